import json
import logging
from pathlib import Path
from typing import Iterable, List, Set, Union

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_STOPWORDS_PATH = Path(__file__).parent.parent / "fdata" / "stopwords.json"

StopwordSpec = Union[None, bool, str, Iterable[str]]


def load_stopwords(language: str = "english") -> Set[str]:
    """Load a bundled stopword list from fdata/stopwords.json."""
    with open(_STOPWORDS_PATH, "r", encoding="utf-8") as f:
        data = json.load(f)
    if language not in data:
        raise ConfigurationError(
            f"No bundled stopword list for {language!r} "
            f"(available: {', '.join(sorted(data))})"
        )
    return {w.lower() for w in data[language]}


class StopwordFilter:
    """
    Removes terms whose case-folded form equals a stopword.

    Compound terms are compared as a whole, so "did_not_like" survives even
    though "did" and "not" are stopwords.
    """

    def __init__(self, stopwords: StopwordSpec = "english", extra: Iterable[str] = ()):
        if stopwords is None or stopwords is False:
            words: Set[str] = set()
        elif stopwords is True:
            words = load_stopwords()
        elif isinstance(stopwords, str):
            words = load_stopwords(stopwords)
        else:
            words = {str(w).lower() for w in stopwords}
        words.update(str(w).lower() for w in extra)
        self.stopwords = frozenset(words)

    def __contains__(self, term: str) -> bool:
        return term.lower() in self.stopwords

    def __len__(self) -> int:
        return len(self.stopwords)

    def filter(self, terms: Iterable[str]) -> List[str]:
        if not self.stopwords:
            return list(terms)
        return [t for t in terms if t.lower() not in self.stopwords]
