__version__ = "0.1.0"

from .analyzers import Dictionary, Document, DocumentScore
from .exceptions import ConfigurationError, DivisionUndefined, LeximinerError
from .pipeline import Pipeline

__all__ = [
    "Dictionary",
    "Document",
    "DocumentScore",
    "Pipeline",
    "ConfigurationError",
    "DivisionUndefined",
    "LeximinerError",
]
