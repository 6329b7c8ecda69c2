from .base import BatchResult, Document, DocumentError, DocumentScore, TokenizedDocument
from .tokenizer import Tokenizer, TokenizerConfig
from .patterns import Pattern, compile_pattern
from .compounder import CompoundRule, Compounder
from .stopwords import StopwordFilter, load_stopwords
from .counter import DocumentFeatureMatrix, count_terms
from .dictionary import Dictionary
from .scorer import CompositeScore, Denominator, GroupTotals, Scorer, aggregate, ratio

__all__ = [
    "BatchResult",
    "Document",
    "DocumentError",
    "DocumentScore",
    "TokenizedDocument",
    "Tokenizer",
    "TokenizerConfig",
    "Pattern",
    "compile_pattern",
    "CompoundRule",
    "Compounder",
    "StopwordFilter",
    "load_stopwords",
    "DocumentFeatureMatrix",
    "count_terms",
    "Dictionary",
    "CompositeScore",
    "Denominator",
    "GroupTotals",
    "Scorer",
    "aggregate",
    "ratio",
]
