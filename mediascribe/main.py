import logging

import uvicorn

from mediascribe.api import create_app
from mediascribe.config import get_config

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

config = get_config()
if config.debug:
    logging.getLogger().setLevel(logging.DEBUG)


def run() -> None:
    logger.info(f"Starting mediascribe on {config.host}:{config.port}")
    logger.debug(f"Config: {config.as_dict()}")
    uvicorn.run(create_app(config), host=config.host, port=config.port)


if __name__ == "__main__":
    run()
