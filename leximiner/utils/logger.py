import logging
from typing import Optional

from rich.logging import RichHandler

_ROOT = "leximiner"


def setup_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Return a module logger under the ``leximiner`` root.

    The root gets a single RichHandler the first time this is called; later
    calls only fetch (and optionally re-level) the named logger.
    """
    root = logging.getLogger(_ROOT)
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        handler = RichHandler(rich_tracebacks=False, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)
        if root.level == logging.NOTSET:
            root.setLevel(logging.INFO)

    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger
