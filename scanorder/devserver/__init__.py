"""In-memory reference backend for the endpoints the client consumes.

Run with `uvicorn scanorder.devserver.main:app`; tests mount it through
httpx.ASGITransport.
"""
