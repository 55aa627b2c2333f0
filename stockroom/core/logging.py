import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure logging defaults for the API process and the terminal client."""
    logging.basicConfig(level=(level or "INFO").upper(), format=LOG_FORMAT)
    if logging.getLogger().level > logging.DEBUG:
        logging.getLogger("urllib3").setLevel(logging.WARNING)
