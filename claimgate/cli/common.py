"""
Helpers shared by claimgate commands.
"""

import logging


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    """Send claimgate logs to stderr at the given level."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.WARNING), format=LOG_FORMAT)
    logging.getLogger("claimgate").setLevel(level.upper())
