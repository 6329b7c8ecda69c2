import logging
from typing import Iterable, List, Sequence, Tuple, Union

from ..exceptions import ConfigurationError
from .patterns import DEFAULT_SEPARATOR, Pattern, compile_pattern

logger = logging.getLogger(__name__)

RuleSpec = Union[str, Sequence[str]]


class CompoundRule:
    """An ordered phrase of token patterns merged into one term."""

    def __init__(self, tokens: RuleSpec):
        if isinstance(tokens, str):
            tokens = tokens.split()
        tokens = tuple(tokens)
        if len(tokens) < 2:
            raise ConfigurationError(
                f"Compound rule {' '.join(map(str, tokens))!r} needs at least two tokens"
            )
        self.tokens: Tuple[str, ...] = tokens
        # Token patterns never contain whitespace, so the separator is irrelevant here.
        self.patterns: Tuple[Pattern, ...] = tuple(compile_pattern(t) for t in tokens)

    def __len__(self) -> int:
        return len(self.tokens)

    def __eq__(self, other) -> bool:
        return isinstance(other, CompoundRule) and self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return f"CompoundRule({' '.join(self.tokens)!r})"

    @property
    def key(self) -> Tuple[str, ...]:
        return tuple(t.lower() for t in self.tokens)

    def matches_at(self, tokens: Sequence[str], start: int) -> bool:
        if start + len(self.patterns) > len(tokens):
            return False
        return all(
            pattern.matches(tokens[start + offset])
            for offset, pattern in enumerate(self.patterns)
        )


class Compounder:
    """
    Greedy left-to-right phrase compounder.

    At each position rules are tried longest first; equal-length rules keep
    their configured order. A match emits the matched source tokens joined
    by ``separator`` and skips past them, so no token is consumed twice.
    """

    def __init__(
        self,
        rules: Iterable[Union[RuleSpec, CompoundRule]] = (),
        separator: str = DEFAULT_SEPARATOR,
    ):
        if not separator:
            raise ConfigurationError("Compound separator must not be empty")
        self.separator = separator

        unique: List[CompoundRule] = []
        seen = set()
        for spec in rules:
            rule = spec if isinstance(spec, CompoundRule) else CompoundRule(spec)
            if rule.key in seen:
                logger.debug(f"Dropping duplicate compound rule {rule!r}")
                continue
            seen.add(rule.key)
            unique.append(rule)

        # sorted() is stable, so ties keep list order.
        self.rules: List[CompoundRule] = sorted(unique, key=len, reverse=True)

    def __len__(self) -> int:
        return len(self.rules)

    def compound(self, tokens: Sequence[str]) -> List[str]:
        if not self.rules:
            return list(tokens)

        result: List[str] = []
        i = 0
        n = len(tokens)
        while i < n:
            for rule in self.rules:
                if rule.matches_at(tokens, i):
                    width = len(rule)
                    result.append(self.separator.join(tokens[i : i + width]))
                    i += width
                    break
            else:
                result.append(tokens[i])
                i += 1
        return result
