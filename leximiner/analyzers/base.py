from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Union


@dataclass(frozen=True)
class Document:
    doc_id: str
    text: Union[str, bytes]
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def __reduce__(self):
        # MappingProxyType does not pickle; process pools need this.
        return (Document, (self.doc_id, self.text, dict(self.metadata)))


@dataclass
class TokenizedDocument:
    doc_id: str
    tokens: List[str]
    terms: List[str]
    filtered_terms: List[str]
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class DocumentScore:
    doc_id: str
    counts: Dict[str, int]
    n_tokens: int
    n_terms: int
    metadata: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    @property
    def matched(self) -> int:
        return sum(self.counts.values())


@dataclass
class DocumentError:
    doc_id: str
    stage: str
    error_type: str
    message: str


@dataclass
class BatchResult:
    rows: List[DocumentScore] = field(default_factory=list)
    errors: List[DocumentError] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def get(self, doc_id: str) -> Optional[DocumentScore]:
        for row in self.rows:
            if row.doc_id == doc_id:
                return row
        return None
