import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..exceptions import ConfigurationError, DivisionUndefined
from .base import DocumentScore

logger = logging.getLogger(__name__)

GroupKey = Union[str, Sequence[str]]


class Denominator(str, Enum):
    MATCHED = "matched"  # sum of all category counts
    TERMS = "terms"  # surviving terms after compounding and stopword removal
    TOKENS = "tokens"  # raw tokens before compounding and stopword removal

    @classmethod
    def parse(cls, value: Union[str, "Denominator"]) -> "Denominator":
        try:
            return cls(value)
        except ValueError:
            raise ConfigurationError(
                f"Unknown denominator {value!r}; expected one of "
                f"{', '.join(d.value for d in cls)}"
            ) from None


def ratio(numerator: float, denominator: float, strict: bool = False) -> Optional[float]:
    """
    numerator / denominator, or None when the denominator is zero.

    None is the missing-value marker; it is never replaced by 0. With
    strict=True a zero denominator raises DivisionUndefined instead.
    """
    if denominator == 0:
        if strict:
            raise DivisionUndefined(f"Cannot divide {numerator} by zero")
        return None
    return numerator / denominator


@dataclass
class GroupTotals:
    """
    Running sums for one group of documents.

    Addition is plain integer summation, so partial totals from any number
    of workers can be combined in any order.
    """

    key: Any = None
    counts: Counter = field(default_factory=Counter)
    n_tokens: int = 0
    n_terms: int = 0
    n_docs: int = 0

    @property
    def matched(self) -> int:
        return sum(self.counts.values())

    def add(self, row: DocumentScore) -> "GroupTotals":
        self.counts.update(row.counts)
        self.n_tokens += row.n_tokens
        self.n_terms += row.n_terms
        self.n_docs += 1
        return self

    def __add__(self, other: "GroupTotals") -> "GroupTotals":
        if not isinstance(other, GroupTotals):
            return NotImplemented
        counts = Counter(self.counts)
        counts.update(other.counts)
        return GroupTotals(
            key=self.key if self.key is not None else other.key,
            counts=counts,
            n_tokens=self.n_tokens + other.n_tokens,
            n_terms=self.n_terms + other.n_terms,
            n_docs=self.n_docs + other.n_docs,
        )


Countable = Union[DocumentScore, GroupTotals]


def total_for(row: Countable, denominator: Union[str, Denominator]) -> int:
    denominator = Denominator.parse(denominator)
    if denominator is Denominator.MATCHED:
        return row.matched
    if denominator is Denominator.TOKENS:
        return row.n_tokens
    return row.n_terms


def proportions(
    row: Countable, denominator: Union[str, Denominator] = Denominator.TERMS
) -> Dict[str, Optional[float]]:
    total = total_for(row, denominator)
    return {name: ratio(count, total) for name, count in row.counts.items()}


def neutral_fraction(
    row: Countable, denominator: Union[str, Denominator] = Denominator.TERMS
) -> Optional[float]:
    """
    Share of the total not matched by any category.

    Not clamped: when a term matches several categories it is counted more
    than once, and the result can drop below zero.
    """
    denominator = Denominator.parse(denominator)
    if denominator is Denominator.MATCHED:
        raise ConfigurationError("Neutral fraction needs a 'terms' or 'tokens' denominator")
    total = total_for(row, denominator)
    return ratio(total - row.matched, total)


class CompositeScore:
    """A linear combination of category counts over a chosen total."""

    def __init__(
        self,
        name: str,
        weights: Mapping[str, float],
        denominator: Union[str, Denominator] = Denominator.MATCHED,
    ):
        if not name:
            raise ConfigurationError("Composite score needs a name")
        if not weights:
            raise ConfigurationError(f"Composite score {name!r} has no weights")
        for category, weight in weights.items():
            if not isinstance(weight, (int, float)) or isinstance(weight, bool):
                raise ConfigurationError(
                    f"Weight for {category!r} in {name!r} must be a number"
                )
        self.name = name
        self.weights = dict(weights)
        self.denominator = Denominator.parse(denominator)

    def __repr__(self) -> str:
        return f"CompositeScore({self.name!r}, {self.weights}, {self.denominator.value!r})"

    def compute(self, row: Countable) -> Optional[float]:
        numerator = sum(w * row.counts.get(c, 0) for c, w in self.weights.items())
        return ratio(numerator, total_for(row, self.denominator))

    @classmethod
    def from_config(cls, name: str, spec: Mapping[str, Any]) -> "CompositeScore":
        """Accepts {weights: {...}, denominator: ...} or a bare weights mapping."""
        if not isinstance(spec, Mapping):
            raise ConfigurationError(f"Composite score {name!r} must be a mapping")
        if "weights" in spec:
            return cls(name, spec["weights"], spec.get("denominator", Denominator.MATCHED))
        return cls(name, spec)


def _hashable(value: Any) -> Any:
    """Freeze list, set and mapping metadata values so they can key a group."""
    if isinstance(value, (list, tuple)):
        return tuple(_hashable(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return tuple(sorted((_hashable(v) for v in value), key=repr))
    if isinstance(value, Mapping):
        return tuple((k, _hashable(v)) for k, v in sorted(value.items(), key=lambda kv: str(kv[0])))
    return value


def _group_value(metadata: Mapping[str, Any], by: GroupKey) -> Any:
    if isinstance(by, str):
        return _hashable(metadata.get(by))
    return tuple(_hashable(metadata.get(k)) for k in by)


def aggregate(rows: Iterable[DocumentScore], by: Optional[GroupKey] = None) -> Dict[Any, GroupTotals]:
    """
    Sum counts and totals per group.

    Ratios are taken afterwards on the summed values, not averaged across
    documents. Rows missing the key land in group None; with by=None every
    row goes into one group keyed None.
    """
    groups: Dict[Any, GroupTotals] = {}
    for row in rows:
        key = None if by is None else _group_value(row.metadata, by)
        try:
            group = groups.get(key)
        except TypeError as e:
            raise ConfigurationError(
                f"Cannot group {row.doc_id!r} by {by!r}: metadata value {key!r} is not usable as a key"
            ) from e
        if group is None:
            group = groups[key] = GroupTotals(key=key)
        group.add(row)
    return groups


class Scorer:
    """Derives proportion, composite and neutral scores for rows or groups."""

    def __init__(
        self,
        categories: Sequence[str],
        denominator: Union[str, Denominator] = Denominator.TERMS,
        composites: Optional[Iterable[CompositeScore]] = None,
        include_neutral: bool = True,
    ):
        self.categories = list(categories)
        self.denominator = Denominator.parse(denominator)
        self.composites: List[CompositeScore] = list(composites or [])
        self.include_neutral = include_neutral

        known = set(self.categories)
        for composite in self.composites:
            unknown = set(composite.weights) - known
            if unknown:
                raise ConfigurationError(
                    f"Composite score {composite.name!r} uses unknown "
                    f"categories: {', '.join(sorted(unknown))}"
                )
        reserved = {f"prop_{c}" for c in self.categories} | {"neutral"}
        for composite in self.composites:
            if composite.name in reserved:
                raise ConfigurationError(f"Composite score name {composite.name!r} is reserved")

    def columns(self) -> List[str]:
        cols = [f"prop_{c}" for c in self.categories]
        cols.extend(c.name for c in self.composites)
        if self.include_neutral:
            cols.append("neutral")
        return cols

    def score(self, row: Countable) -> Dict[str, Optional[float]]:
        props = proportions(row, self.denominator)
        scores: Dict[str, Optional[float]] = {
            f"prop_{c}": props.get(c, ratio(0, total_for(row, self.denominator)))
            for c in self.categories
        }
        for composite in self.composites:
            scores[composite.name] = composite.compute(row)
        if self.include_neutral:
            neutral_basis = (
                Denominator.TERMS
                if self.denominator is Denominator.MATCHED
                else self.denominator
            )
            scores["neutral"] = neutral_fraction(row, neutral_basis)
        return scores


def group_label(key: Any, by: Optional[GroupKey]) -> Dict[str, Any]:
    """Spread a group key back into named columns."""
    if by is None:
        return {}
    if isinstance(by, str):
        return {by: key}
    return dict(zip(by, key))


def weighted_mean(pairs: Iterable[Tuple[Optional[float], float]]) -> Optional[float]:
    """Weighted mean of (value, weight) pairs, skipping missing values."""
    num = 0.0
    den = 0.0
    for value, weight in pairs:
        if value is None:
            continue
        num += value * weight
        den += weight
    return ratio(num, den)
