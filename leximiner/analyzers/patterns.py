import re
from dataclasses import dataclass
from typing import Optional, Pattern as RegexPattern

from ..exceptions import PatternError

WILDCARD_ANY = "*"
WILDCARD_ONE = "?"
_WILDCARDS = WILDCARD_ANY + WILDCARD_ONE

DEFAULT_SEPARATOR = "_"


@dataclass(frozen=True)
class Pattern:
    """
    A dictionary or compound-rule pattern compiled once for matching.

    Glob semantics against the whole (case-folded) term: ``*`` matches zero
    or more characters and ``?`` exactly one. Single leading/trailing ``*``
    patterns get plain string fast paths; anything else goes through a regex.
    """

    raw: str
    kind: str
    literal: str
    regex: Optional[RegexPattern] = None

    def matches(self, term: str) -> bool:
        term = term.lower()
        if self.kind == "exact":
            return term == self.literal
        if self.kind == "prefix":
            return term.startswith(self.literal)
        if self.kind == "suffix":
            return term.endswith(self.literal)
        if self.kind == "substring":
            return self.literal in term
        return self.regex.fullmatch(term) is not None

    @property
    def is_multiword(self) -> bool:
        return " " in self.raw.strip()


def _glob_to_regex(pattern: str) -> RegexPattern:
    parts = []
    for char in pattern:
        if char == WILDCARD_ANY:
            parts.append(".*")
        elif char == WILDCARD_ONE:
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.DOTALL)


def compile_pattern(raw: str, separator: str = DEFAULT_SEPARATOR) -> Pattern:
    """
    Compile a pattern string.

    Internal whitespace is replaced by ``separator`` so that "did not like"
    matches the compound term "did_not_like".

    Raises:
        PatternError: if the pattern is empty or consists only of wildcards.
    """
    if not isinstance(raw, str):
        raise PatternError(f"Pattern must be a string, got {type(raw).__name__}: {raw!r}")
    if not raw.strip():
        raise PatternError("Pattern must not be empty")

    text = separator.join(raw.lower().split())
    if not text.strip(_WILDCARDS):
        raise PatternError(f"Pattern {raw!r} has no literal characters")

    if not any(w in text for w in _WILDCARDS):
        return Pattern(raw=raw, kind="exact", literal=text)

    if WILDCARD_ONE not in text:
        inner = text.strip(WILDCARD_ANY)
        if WILDCARD_ANY not in inner:
            leading = text.startswith(WILDCARD_ANY)
            trailing = text.endswith(WILDCARD_ANY)
            lead_n = len(text) - len(text.lstrip(WILDCARD_ANY))
            trail_n = len(text) - len(text.rstrip(WILDCARD_ANY))
            if lead_n <= 1 and trail_n <= 1:
                if leading and trailing:
                    return Pattern(raw=raw, kind="substring", literal=inner)
                if trailing:
                    return Pattern(raw=raw, kind="prefix", literal=inner)
                return Pattern(raw=raw, kind="suffix", literal=inner)

    return Pattern(raw=raw, kind="glob", literal=text, regex=_glob_to_regex(text))
