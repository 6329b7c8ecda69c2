import csv
import json
import logging
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import psutil

from .analyzers.base import (
    BatchResult,
    Document,
    DocumentError,
    DocumentScore,
    TokenizedDocument,
)
from .analyzers.compounder import Compounder
from .analyzers.counter import DocumentFeatureMatrix, count_terms
from .analyzers.dictionary import Dictionary
from .analyzers.scorer import CompositeScore, Denominator, GroupKey, Scorer, aggregate, group_label
from .analyzers.stopwords import StopwordFilter, StopwordSpec
from .analyzers.tokenizer import Tokenizer, TokenizerConfig
from .exceptions import ConfigurationError, DocumentProcessingError, EmptyDocumentWarning
from .utils.encoding import decode_text
from .utils.progress import ProgressTracker

logger = logging.getLogger(__name__)

EXECUTORS = ("serial", "thread", "process")


def default_workers() -> int:
    return psutil.cpu_count(logical=False) or psutil.cpu_count() or 1


class Pipeline:
    """
    Dictionary scoring pipeline.

    Stages, per document:
      1. Decode    - bytes to text (UTF-8, then chardet)
      2. Tokenize  - Tokenizer with the configured removal/case options
      3. Compound  - merge multi-word phrases before stopwords are removed
      4. Filter    - StopwordFilter
      5. Count     - term-count table
      6. Match     - Dictionary.match -> per-category counts

    Scoring and grouping run afterwards on the collected rows. All
    configuration is validated here, before any document is touched.

    Usage:
        p = Pipeline(Dictionary.load_builtin("sentiment"), compounds="dictionary")
        result = p.run(documents)
        records = p.score(result)
    """

    def __init__(
        self,
        dictionary: Dictionary,
        compounds: Union[str, Iterable[Any], Compounder] = (),
        stopwords: StopwordSpec = "english",
        extra_stopwords: Iterable[str] = (),
        tokenizer: Optional[TokenizerConfig] = None,
        denominator: Union[str, Denominator] = Denominator.TERMS,
        composites: Optional[Iterable[CompositeScore]] = None,
        workers: Optional[int] = None,
        executor: str = "thread",
        show_progress: bool = False,
    ):
        if not isinstance(dictionary, Dictionary):
            raise ConfigurationError("Pipeline needs a Dictionary instance")
        if executor not in EXECUTORS:
            raise ConfigurationError(
                f"Unknown executor {executor!r}; expected one of {EXECUTORS}"
            )
        if workers is not None and workers < 1:
            raise ConfigurationError("workers must be at least 1")

        self.dictionary = dictionary
        self.tokenizer = Tokenizer(tokenizer)

        if isinstance(compounds, Compounder):
            self.compounder = compounds
        elif compounds == "dictionary":
            self.compounder = Compounder(dictionary.multiword_phrases(), dictionary.separator)
        elif isinstance(compounds, str):
            raise ConfigurationError(
                f"compounds must be a list of phrases or 'dictionary', got {compounds!r}"
            )
        else:
            self.compounder = Compounder(compounds or (), dictionary.separator)

        self.stopword_filter = StopwordFilter(stopwords, extra=extra_stopwords)
        self.scorer = Scorer(dictionary.names, denominator, composites)
        self.workers = workers or default_workers()
        self.executor = executor
        self.show_progress = show_progress

        logger.debug(
            f"Pipeline ready: {len(dictionary)} categories, {len(self.compounder)} "
            f"compound rules, {len(self.stopword_filter)} stopwords, "
            f"{self.executor} executor x{self.workers}"
        )

    @classmethod
    def from_config(cls, config, show_progress: bool = False) -> "Pipeline":
        """Build a pipeline from an AnalysisConfig (see config.py)."""
        dictionary = config.load_dictionary()
        return cls(
            dictionary=dictionary,
            compounds=config.load_compounds(),
            stopwords=config.stopwords,
            extra_stopwords=config.extra_stopwords,
            tokenizer=config.tokenizer,
            denominator=config.denominator,
            composites=config.build_composites(),
            workers=config.workers,
            executor=config.executor,
            show_progress=show_progress,
        )

    def tokenize(self, document: Document) -> TokenizedDocument:
        text = decode_text(document.text, document.doc_id)
        tokens = self.tokenizer.tokenize(text)
        terms = self.compounder.compound(tokens)
        filtered = self.stopword_filter.filter(terms)
        return TokenizedDocument(
            doc_id=document.doc_id,
            tokens=tokens,
            terms=terms,
            filtered_terms=filtered,
            metadata=document.metadata,
        )

    def term_counts(self, document: Document):
        tokenized = self.tokenize(document)
        return tokenized, count_terms(
            tokenized.filtered_terms, lowercase=self.tokenizer.config.lowercase
        )

    def process(self, document: Document) -> DocumentScore:
        """Run the full chain for one document. Errors propagate."""
        tokenized, counts = self.term_counts(document)
        row = DocumentScore(
            doc_id=document.doc_id,
            counts=self.dictionary.match(counts),
            n_tokens=len(tokenized.tokens),
            n_terms=sum(counts.values()),
            metadata=dict(document.metadata),
        )
        if row.n_terms == 0:
            logger.warning(f"Document {document.doc_id!r} has no terms after filtering")
            row.warnings.append(EmptyDocumentWarning.__name__)
        return row

    def _process_safe(self, document: Any, index: int) -> Union[DocumentScore, DocumentError]:
        doc_id = getattr(document, "doc_id", None) or f"#{index}"
        try:
            if not isinstance(document, Document):
                raise DocumentProcessingError(
                    f"Expected a Document, got {type(document).__name__}",
                    doc_id=doc_id,
                    stage="input",
                )
            return self.process(document)
        except DocumentProcessingError as e:
            logger.error(f"{e.stage} failed for {doc_id}: {e}")
            return DocumentError(doc_id, e.stage, type(e).__name__, str(e))
        except Exception as e:
            logger.error(f"Processing failed for {doc_id}: {e}")
            return DocumentError(doc_id, "process", type(e).__name__, str(e))

    def run(self, documents: Iterable[Document]) -> BatchResult:
        """
        Process a batch of documents.

        Rows come back in input order whatever the executor. A document that
        fails is recorded in ``errors`` and the rest of the batch continues.
        """
        documents = list(documents)
        outcomes: List[Union[DocumentScore, DocumentError, None]] = [None] * len(documents)

        with ProgressTracker(enabled=self.show_progress) as progress:
            task = progress.add_task(f"Scoring {len(documents)} documents", total=len(documents))

            if self.executor == "serial" or self.workers == 1 or len(documents) < 2:
                for i, doc in enumerate(documents):
                    outcomes[i] = self._process_safe(doc, i)
                    progress.advance(task)
            else:
                pool_cls = ThreadPoolExecutor if self.executor == "thread" else ProcessPoolExecutor
                with pool_cls(max_workers=self.workers) as executor:
                    future_to_index = {
                        executor.submit(self._process_safe, doc, i): i
                        for i, doc in enumerate(documents)
                    }
                    for future in as_completed(future_to_index):
                        i = future_to_index[future]
                        try:
                            outcomes[i] = future.result()
                        except Exception as e:
                            doc_id = getattr(documents[i], "doc_id", None) or f"#{i}"
                            logger.error(f"Worker failed for {doc_id}: {e}")
                            outcomes[i] = DocumentError(doc_id, "worker", type(e).__name__, str(e))
                        progress.advance(task)

        result = BatchResult()
        for outcome in outcomes:
            if isinstance(outcome, DocumentError):
                result.errors.append(outcome)
            else:
                result.rows.append(outcome)

        logger.info(
            f"Scored {len(result.rows)}/{len(documents)} documents"
            + (f" ({len(result.errors)} failed)" if result.errors else "")
        )
        return result

    def dfm(self, documents: Iterable[Document]) -> DocumentFeatureMatrix:
        """Document-feature matrix of the filtered terms; failing documents are skipped."""
        doc_ids, counters = [], []
        for document in documents:
            try:
                _, counts = self.term_counts(document)
            except Exception as e:
                logger.error(f"Skipping {getattr(document, 'doc_id', document)!r} in dfm: {e}")
                continue
            doc_ids.append(document.doc_id)
            counters.append(counts)
        return DocumentFeatureMatrix.from_counts(doc_ids, counters)

    def score(self, result: Union[BatchResult, Sequence[DocumentScore]]) -> List[Dict[str, Any]]:
        """One record per document: ids, metadata, counts, totals and scores."""
        rows = result.rows if isinstance(result, BatchResult) else result
        return [
            {
                "doc_id": row.doc_id,
                "metadata": dict(row.metadata),
                "counts": dict(row.counts),
                "n_tokens": row.n_tokens,
                "n_terms": row.n_terms,
                "scores": self.scorer.score(row),
                "warnings": list(row.warnings),
            }
            for row in rows
        ]

    def aggregate(
        self,
        result: Union[BatchResult, Sequence[DocumentScore]],
        by: Optional[GroupKey] = None,
    ) -> List[Dict[str, Any]]:
        """
        Grouped records: counts and totals summed per group, then scored.

        Groups are ordered by first appearance.
        """
        rows = result.rows if isinstance(result, BatchResult) else result
        return group_records(rows, by, self.scorer)

    @staticmethod
    def save_json(records: Any, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(records, ensure_ascii=False, indent=2), encoding="utf-8")
        logger.info(f"Saved {path}")
        return path

    @staticmethod
    def save_csv(records: Sequence[Mapping[str, Any]], path: Union[str, Path]) -> Path:
        """Write records as a flat CSV; missing scores become empty cells."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        flat = [flatten_record(r) for r in records]
        fieldnames: List[str] = []
        for record in flat:
            for key in record:
                if key not in fieldnames:
                    fieldnames.append(key)
        with open(path, "w", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            writer.writerows(flat)
        logger.info(f"Saved {path}")
        return path


def group_records(
    rows: Sequence[DocumentScore], by: Optional[GroupKey], scorer: Scorer
) -> List[Dict[str, Any]]:
    if isinstance(by, list):
        by = by[0] if len(by) == 1 else tuple(by)
    groups = aggregate(rows, by)
    return [
        {
            "group": group_label(key, by),
            "counts": dict(totals.counts),
            "n_tokens": totals.n_tokens,
            "n_terms": totals.n_terms,
            "n_docs": totals.n_docs,
            "scores": scorer.score(totals),
        }
        for key, totals in groups.items()
    ]


def flatten_record(record: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Flatten a nested score record into CSV columns.

    counts become ``n_<category>``. metadata and group keys keep their names
    unless they clash with one of those computed columns, in which case they
    are written as ``meta_<key>``.
    """
    reserved = set()
    for key, value in record.items():
        if key == "scores":
            reserved.update(value)
        elif key == "counts":
            reserved.update(f"n_{name}" for name in value)
        elif key not in ("metadata", "group"):
            reserved.add(key)

    flat: Dict[str, Any] = {}
    for key, value in record.items():
        if key in ("metadata", "group"):
            for name, item in value.items():
                column = name
                while column in reserved or column in flat:
                    column = f"meta_{column}"
                flat[column] = item
        elif key == "scores":
            flat.update(value)
        elif key == "counts":
            flat.update({f"n_{name}": count for name, count in value.items()})
        elif key == "warnings":
            flat[key] = ";".join(value)
        else:
            flat[key] = value
    return flat


def row_from_record(record: Mapping[str, Any]) -> DocumentScore:
    """Rebuild a DocumentScore from a record written by Pipeline.score."""
    try:
        return DocumentScore(
            doc_id=str(record["doc_id"]),
            counts={k: int(v) for k, v in record["counts"].items()},
            n_tokens=int(record["n_tokens"]),
            n_terms=int(record["n_terms"]),
            metadata=dict(record.get("metadata") or {}),
            warnings=list(record.get("warnings") or []),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ConfigurationError(f"Malformed score record: {e}") from e
