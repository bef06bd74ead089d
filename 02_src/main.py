"""Main entry point for the team review bot."""

import uvicorn
from dotenv import load_dotenv

from reviewer.api import create_fastapi_app
from reviewer.app import Application
from reviewer.config import PROJECT_ROOT, Settings
from reviewer.logging_config import setup_logging


def main():
    """Run the application."""
    load_dotenv(PROJECT_ROOT / ".env")
    setup_logging()

    settings = Settings.from_env()
    app = create_fastapi_app(Application(settings))

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
