import re
import logging
import unicodedata
from dataclasses import dataclass, asdict
from typing import List, Optional

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Numbers with inner separators ("1,000.5") first, then words (inner
# apostrophes and hyphens kept), then any single non-space character.
_TOKEN_RE = re.compile(
    r"\d+(?:[.,]\d+)+(?!\w)"
    r"|\w+(?:['’\-]\w+)*"
    r"|[^\w\s]",
    re.UNICODE,
)
_NUMBER_RE = re.compile(r"^[+\-]?\d+(?:[.,]\d+)*$")


@dataclass(frozen=True)
class TokenizerConfig:
    remove_punctuation: bool = True
    remove_numbers: bool = False
    remove_symbols: bool = True
    lowercase: bool = True

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "TokenizerConfig":
        data = dict(data or {})
        unknown = set(data) - set(asdict(cls()))
        if unknown:
            raise ConfigurationError(
                f"Unknown tokenizer option(s): {', '.join(sorted(unknown))}"
            )
        for key, value in data.items():
            if not isinstance(value, bool):
                raise ConfigurationError(f"Tokenizer option {key!r} must be true/false")
        return cls(**data)


def _char_class(token: str) -> str:
    """Classify a token as 'number', 'punct', 'symbol' or 'word'."""
    if _NUMBER_RE.match(token):
        return "number"
    if len(token) == 1:
        category = unicodedata.category(token)
        if category.startswith("P"):
            return "punct"
        if category.startswith("S"):
            return "symbol"
    return "word"


class Tokenizer:
    """
    Regex tokenizer.

    Splits text into words, numbers, punctuation marks and symbols in source
    order, then drops classes and case-folds according to TokenizerConfig.
    No stemming or lemmatization.
    """

    def __init__(self, config: Optional[TokenizerConfig] = None):
        self.config = config or TokenizerConfig()

    def tokenize(self, text: str) -> List[str]:
        if not text or not text.strip():
            return []

        cfg = self.config
        tokens = []
        for match in _TOKEN_RE.finditer(text):
            token = match.group()
            kind = _char_class(token)
            if kind == "punct" and cfg.remove_punctuation:
                continue
            if kind == "number" and cfg.remove_numbers:
                continue
            if kind == "symbol" and cfg.remove_symbols:
                continue
            tokens.append(token.lower() if cfg.lowercase else token)
        return tokens
