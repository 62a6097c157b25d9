"""
ASGI entry point.

Used by uvicorn / gunicorn:

    uvicorn server.asgi:app --app-dir backend

or directly via the `chat-session` console script.
"""

import os

from dotenv import load_dotenv

load_dotenv()

from server.app import create_app  # pylint: disable=wrong-import-position

app = create_app()


def main() -> None:
    """Run the app under uvicorn (dev entry point)."""
    import uvicorn  # pylint: disable=import-outside-toplevel

    uvicorn.run(
        app,
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
        log_level=os.environ.get("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
