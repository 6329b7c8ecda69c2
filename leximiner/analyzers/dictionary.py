import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Tuple, Union

import numpy as np
import scipy.sparse as sp

from ..exceptions import ConfigurationError
from ..utils.yaml_utils import PatternLoader, load_yaml
from .counter import DocumentFeatureMatrix
from .patterns import DEFAULT_SEPARATOR, Pattern, compile_pattern

logger = logging.getLogger(__name__)

_FDATA = Path(__file__).parent.parent / "fdata"

DictionarySpec = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]


def _flatten(pairs: Iterable[Tuple[Any, Any]], prefix: str = "") -> Iterator[Tuple[str, Any]]:
    """Flatten nested category mappings into dotted names ("economy.positive")."""
    for name, value in pairs:
        if not isinstance(name, str) or not name.strip():
            raise ConfigurationError(f"Category name must be a non-empty string, got {name!r}")
        full_name = f"{prefix}{name.strip()}"
        if isinstance(value, Mapping) and value:
            yield from _flatten(value.items(), prefix=f"{full_name}.")
        elif isinstance(value, Mapping):
            # an empty group is kept as a category with no patterns
            yield full_name, []
        else:
            yield full_name, value


class Dictionary:
    """
    Category -> pattern-list dictionary with precompiled matchers.

    Patterns follow glob rules (see patterns.compile_pattern). A term is
    counted once per category no matter how many of the category's patterns
    it matches, and independently for every category it matches: a term
    matching both "positive" and "negative" counts toward both.
    """

    def __init__(self, entries: DictionarySpec, separator: str = DEFAULT_SEPARATOR):
        pairs = entries.items() if isinstance(entries, Mapping) else entries
        self.separator = separator
        self._categories: Dict[str, Tuple[Pattern, ...]] = {}

        for name, value in _flatten(pairs):
            if name in self._categories:
                raise ConfigurationError(f"Duplicate category name {name!r}")
            if isinstance(value, str):
                value = [value]
            if not isinstance(value, (list, tuple, set, frozenset)):
                raise ConfigurationError(
                    f"Category {name!r} must map to a list of patterns, "
                    f"got {type(value).__name__}"
                )
            patterns = tuple(compile_pattern(p, separator) for p in value)
            if not patterns:
                logger.warning(f"Category {name!r} has no patterns and will always count 0")
            self._categories[name] = patterns

        if not self._categories:
            raise ConfigurationError("Dictionary has no categories")

        self._cache: Dict[str, Tuple[str, ...]] = {}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], **kwargs) -> "Dictionary":
        if not isinstance(data, Mapping):
            raise ConfigurationError(
                f"Dictionary definition must be a mapping, got {type(data).__name__}"
            )
        return cls(data, **kwargs)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, Any]], **kwargs) -> "Dictionary":
        return cls(list(pairs), **kwargs)

    @classmethod
    def from_yaml(cls, path: Union[str, Path], **kwargs) -> "Dictionary":
        return cls.from_dict(load_yaml(path, loader=PatternLoader), **kwargs)

    @classmethod
    def from_json(cls, path: Union[str, Path], **kwargs) -> "Dictionary":
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"), object_pairs_hook=list)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON dictionary {path}: {e}") from e
        if not isinstance(data, list):
            raise ConfigurationError(f"Dictionary definition in {path} must be an object")
        return cls(_pairs_from_json(data), **kwargs)

    @classmethod
    def load(cls, path: Union[str, Path], **kwargs) -> "Dictionary":
        """Load a dictionary file, picking the format from its extension."""
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Dictionary file not found: {path}")
        suffix = path.suffix.lower()
        if suffix in (".yml", ".yaml"):
            return cls.from_yaml(path, **kwargs)
        if suffix == ".json":
            return cls.from_json(path, **kwargs)
        raise ConfigurationError(f"Unsupported dictionary format {suffix!r} for {path}")

    @classmethod
    def load_builtin(cls, name: str = "sentiment", **kwargs) -> "Dictionary":
        path = _FDATA / f"{name}.yaml"
        if not path.exists():
            raise ConfigurationError(f"No bundled dictionary named {name!r}")
        return cls.from_yaml(path, **kwargs)

    @property
    def names(self) -> List[str]:
        return list(self._categories)

    def __len__(self) -> int:
        return len(self._categories)

    def __iter__(self) -> Iterator[str]:
        return iter(self._categories)

    def __contains__(self, name: str) -> bool:
        return name in self._categories

    def __repr__(self) -> str:
        return f"Dictionary({', '.join(self._categories)})"

    def patterns(self, category: str) -> Tuple[Pattern, ...]:
        return self._categories[category]

    def to_dict(self) -> Dict[str, List[str]]:
        return {name: [p.raw for p in pats] for name, pats in self._categories.items()}

    def multiword_phrases(self) -> List[str]:
        """Multi-word entries, in dictionary order, for use as compound rules."""
        phrases: List[str] = []
        for patterns in self._categories.values():
            for pattern in patterns:
                phrase = " ".join(pattern.raw.split())
                if pattern.is_multiword and phrase not in phrases:
                    phrases.append(phrase)
        return phrases

    def categories_for(self, term: str) -> Tuple[str, ...]:
        """Categories with at least one pattern matching ``term``."""
        key = term.lower()
        cached = self._cache.get(key)
        if cached is None:
            cached = tuple(
                name
                for name, patterns in self._categories.items()
                if any(p.matches(key) for p in patterns)
            )
            self._cache[key] = cached
        return cached

    def match(self, counts: Mapping[str, int]) -> Dict[str, int]:
        """Per-category match counts for one document's term-count table."""
        result = {name: 0 for name in self._categories}
        for term, count in counts.items():
            for name in self.categories_for(term):
                result[name] += count
        return result

    def lookup(self, dfm: DocumentFeatureMatrix) -> DocumentFeatureMatrix:
        """
        Apply the dictionary to a whole document-feature matrix.

        Returns a matrix whose features are the category names, in
        dictionary order.
        """
        names = self.names
        index = {name: j for j, name in enumerate(names)}
        rows, cols = [], []
        for i, feature in enumerate(dfm.features):
            for name in self.categories_for(feature):
                rows.append(i)
                cols.append(index[name])
        indicator = sp.csr_matrix(
            (np.ones(len(rows), dtype=np.int64), (rows, cols)),
            shape=(len(dfm.features), len(names)),
        )
        return DocumentFeatureMatrix(dfm.matrix @ indicator, dfm.doc_ids, names)


def _pairs_from_json(pairs: List[Tuple[str, Any]]) -> List[Tuple[str, Any]]:
    # object_pairs_hook=list keeps duplicate keys visible; nested objects
    # arrive as pair lists too and are turned back into mappings.
    result = []
    for name, value in pairs:
        if isinstance(value, list) and value and all(
            isinstance(v, tuple) and len(v) == 2 and isinstance(v[0], str) for v in value
        ):
            nested = _pairs_from_json(value)
            names = [n for n, _ in nested]
            if len(set(names)) != len(names):
                raise ConfigurationError(f"Duplicate category name under {name!r}")
            value = dict(nested)
        result.append((name, value))
    return result
