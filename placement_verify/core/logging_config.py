"""
Logging setup shared by the API process and scripts.
"""

import logging


def configure_logging(level: str = "INFO", debug: bool = False) -> None:
    """
    Configure root logging once for the process.

    SQL echo from SQLAlchemy is kept at WARNING unless debug is on.
    """
    resolved = getattr(logging, str(level).strip().upper(), logging.INFO)
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    if not debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
