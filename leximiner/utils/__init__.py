from .logger import setup_logger
from .progress import ProgressTracker

__all__ = ["setup_logger", "ProgressTracker"]
