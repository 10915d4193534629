"""FastAPI backend application entry point.

This module initializes the application using the factory pattern.
It serves as the entry point for uvicorn.
"""
import os

import uvicorn

from backend.app_factory import create_app

# This global 'app' variable is what uvicorn looks for
app = create_app()


def main() -> None:
    """Run the application using uvicorn when executed directly."""
    context = app.state.context

    # A single worker: the match state lives in this process
    uvicorn.run(
        "backend.main:app",
        host=context.api_host,
        port=context.api_port,
        log_level="info",
        loop="asyncio" if os.name == "nt" else "auto",
    )


if __name__ == "__main__":
    main()
