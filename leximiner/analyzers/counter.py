import logging
from collections import Counter
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

import numpy as np
import scipy.sparse as sp
from sklearn.feature_extraction import DictVectorizer
from sklearn.feature_extraction.text import TfidfTransformer
from sklearn.preprocessing import normalize

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

WEIGHT_SCHEMES = ("count", "prop", "tfidf")


def count_terms(terms: Iterable[str], lowercase: bool = True) -> Counter:
    """
    Build the term-count table for one document.

    The counts always sum to the number of terms passed in.
    """
    if lowercase:
        return Counter(t.lower() for t in terms)
    return Counter(terms)


class DocumentFeatureMatrix:
    """
    Sparse document x feature count matrix.

    Rows follow ``doc_ids`` order, columns follow ``features`` order. Built
    from per-document term-count tables with scikit-learn's DictVectorizer.
    """

    def __init__(self, matrix, doc_ids: Sequence[str], features: Sequence[str]):
        self.matrix = sp.csr_matrix(matrix)
        self.doc_ids: List[str] = list(doc_ids)
        self.features: List[str] = list(features)
        if self.matrix.shape != (len(self.doc_ids), len(self.features)):
            raise ValueError(
                f"Matrix shape {self.matrix.shape} does not match "
                f"{len(self.doc_ids)} documents x {len(self.features)} features"
            )
        self._row_index = {doc_id: i for i, doc_id in enumerate(self.doc_ids)}

    @classmethod
    def from_counts(
        cls, doc_ids: Sequence[str], counters: Sequence[Mapping[str, int]]
    ) -> "DocumentFeatureMatrix":
        counters = list(counters)
        if len(doc_ids) != len(counters):
            raise ValueError("doc_ids and counters must have the same length")

        if not any(counters):
            return cls(sp.csr_matrix((len(doc_ids), 0), dtype=np.int64), doc_ids, [])

        vectorizer = DictVectorizer(dtype=np.int64, sparse=True, sort=True)
        matrix = vectorizer.fit_transform([dict(c) for c in counters])
        features = [str(f) for f in vectorizer.get_feature_names_out()]
        return cls(matrix, doc_ids, features)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.matrix.shape

    def __len__(self) -> int:
        return len(self.doc_ids)

    def __repr__(self) -> str:
        return f"DocumentFeatureMatrix({len(self.doc_ids)} docs x {len(self.features)} features)"

    def row(self, doc_id: str, include_zero: bool = False) -> Dict[str, int]:
        i = self._row_index[doc_id]
        values = self.matrix.getrow(i).toarray().ravel()
        return {
            feature: values[j].item()
            for j, feature in enumerate(self.features)
            if include_zero or values[j]
        }

    def row_totals(self) -> Dict[str, float]:
        sums = np.asarray(self.matrix.sum(axis=1)).ravel()
        return {doc_id: sums[i].item() for i, doc_id in enumerate(self.doc_ids)}

    def term_totals(self) -> Counter:
        sums = np.asarray(self.matrix.sum(axis=0)).ravel()
        return Counter({f: sums[j].item() for j, f in enumerate(self.features)})

    def doc_frequencies(self) -> Counter:
        df = np.asarray((self.matrix > 0).sum(axis=0)).ravel()
        return Counter({f: int(df[j]) for j, f in enumerate(self.features)})

    def top_features(self, n: int = 10) -> List[Tuple[str, int]]:
        return self.term_totals().most_common(n)

    def trim(self, min_termfreq: int = 1, min_docfreq: int = 1) -> "DocumentFeatureMatrix":
        """Drop features below a total frequency or document frequency."""
        termfreq = np.asarray(self.matrix.sum(axis=0)).ravel()
        docfreq = np.asarray((self.matrix > 0).sum(axis=0)).ravel()
        keep = np.flatnonzero((termfreq >= min_termfreq) & (docfreq >= min_docfreq))
        logger.debug(f"Trim kept {len(keep)}/{len(self.features)} features")
        return DocumentFeatureMatrix(
            self.matrix[:, keep], self.doc_ids, [self.features[j] for j in keep]
        )

    def weight(self, scheme: str = "count") -> "DocumentFeatureMatrix":
        """
        Reweight the matrix.

        count: raw counts (copy)
        prop:  each row divided by its total; empty rows stay all zero
        tfidf: scikit-learn TfidfTransformer with default smoothing
        """
        if scheme not in WEIGHT_SCHEMES:
            raise ConfigurationError(
                f"Unknown weighting scheme {scheme!r}; expected one of {WEIGHT_SCHEMES}"
            )
        if scheme == "count":
            weighted = self.matrix.copy()
        elif scheme == "prop":
            weighted = normalize(self.matrix.astype(np.float64), norm="l1", axis=1)
        else:
            weighted = TfidfTransformer().fit_transform(self.matrix)
        return DocumentFeatureMatrix(weighted, self.doc_ids, self.features)
