import logging

from .config import LOG_LEVEL

FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = LOG_LEVEL):
    logging.basicConfig(format=FORMAT, level=getattr(logging, str(level).upper(), logging.INFO))
    # every getUpdates poll is logged at INFO by httpx
    logging.getLogger("httpx").setLevel(logging.WARNING)
