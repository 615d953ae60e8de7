import logging
import webbrowser
from threading import Timer
from urllib.parse import urlparse

import uvicorn

from homeledger.core.config import get_settings


def open_browser(url: str):
    """Open the local UI once the server has had a moment to start."""
    webbrowser.open(url)


if __name__ == "__main__":
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format='%(levelname)s:%(name)s:%(message)s',
    )
    logger = logging.getLogger("run_app")

    server = urlparse(settings.SERVER_HOST)
    host = server.hostname or "127.0.0.1"
    port = server.port or 8001

    logger.info(f"Starting {settings.PROJECT_NAME} {settings.PROJECT_VERSION} on {host}:{port}")
    Timer(2, open_browser, args=(f"{settings.SERVER_HOST}/docs",)).start()

    uvicorn.run(
        "homeledger.main:create_app",
        factory=True,
        host=host,
        port=port,
        log_level=settings.LOG_LEVEL.lower(),
        reload=False,
    )
