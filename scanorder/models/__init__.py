# Importing the module registers tables with Base for create_all()
from .core import StoredValue, StoredCookie  # noqa: F401

__all__ = ["StoredValue", "StoredCookie"]
