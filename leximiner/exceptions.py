from typing import Optional


class LeximinerError(Exception):
    """Base class for leximiner errors."""


class ConfigurationError(LeximinerError, ValueError):
    """Malformed dictionary, compound rule, or analysis configuration."""


class PatternError(ConfigurationError):
    """Malformed wildcard pattern."""


class DivisionUndefined(LeximinerError, ZeroDivisionError):
    """A derived score was requested strictly but its denominator is zero."""


class DocumentProcessingError(LeximinerError):
    """A single document could not be processed."""

    def __init__(self, message: str, doc_id: Optional[str] = None, stage: str = "process"):
        super().__init__(message)
        self.doc_id = doc_id
        self.stage = stage


class EmptyDocumentWarning(UserWarning):
    """A document had no terms left after stopword filtering."""
