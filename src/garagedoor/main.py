import sys

import uvicorn
from dotenv import load_dotenv
from loguru import logger

from garagedoor import __version__
from garagedoor.api import create_app
from garagedoor.config import load_config
from garagedoor.errors import ConfigurationError
from garagedoor.logger import setup_logging


def main() -> int:
    load_dotenv()
    try:
        config = load_config()
    except ConfigurationError as e:
        setup_logging()
        logger.error(str(e))
        return 1

    setup_logging(config.log_level)
    try:
        app = create_app(config)
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    scheme = "https" if config.tls_enabled else "http"
    logger.info(f"=> Booting Garage Server {__version__}")
    logger.info(f"* Listening on {scheme}://{config.host}:{config.port}")
    logger.info("=> Ctrl-C to shutdown server")
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        ssl_certfile=str(config.cert) if config.cert else None,
        ssl_keyfile=str(config.key) if config.key else None,
        log_level=config.log_level.lower(),
    )
    return 0


if __name__ == '__main__':
    sys.exit(main())
