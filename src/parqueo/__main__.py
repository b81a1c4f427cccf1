"""Run the API server: python -m parqueo

Reads configuration from the environment (and a .env file, if present).
Exits with status 1 when configuration is invalid.
"""

import sys

import uvicorn
from dotenv import load_dotenv

from parqueo.api.factory import create_app
from parqueo.infra.settings import ConfigError, load_settings
from parqueo.observability.logging import configure_logging, get_logger

logger = get_logger(__name__)


def main() -> int:
    load_dotenv()
    configure_logging()

    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.error("invalid configuration: %s", exc)
        return 1

    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="info")
    return 0


if __name__ == "__main__":
    sys.exit(main())
