"""Backend package for the arena server.

This package provides the FastAPI application, WebSocket handling and the
authoritative session engine that runs matches against the adaptive opponent.
"""

__version__ = "1.0.0"
