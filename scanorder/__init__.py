from scanorder.session import OrderingSession  # noqa: F401

__all__ = ["OrderingSession"]
__version__ = "0.3.0"
