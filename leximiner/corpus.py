import csv
import io
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from .analyzers.base import Document
from .exceptions import ConfigurationError
from .utils.encoding import decode_text

logger = logging.getLogger(__name__)

FORMATS = ("txt", "csv", "json", "jsonl")


def _infer_format(path: Path) -> str:
    if path.is_dir():
        return "txt"
    suffix = path.suffix.lower().lstrip(".")
    if suffix in FORMATS:
        return suffix
    raise ConfigurationError(f"Cannot infer corpus format for {path}; pass format explicitly")


def _record_to_document(
    record: Mapping[str, Any], index: int, text_field: str, id_field: Optional[str]
) -> Document:
    doc_id = record.get(id_field) if id_field else None
    if doc_id in (None, ""):
        doc_id = f"doc{index}"
    text = record.get(text_field)
    if text is None:
        logger.warning(f"Record {doc_id!r} has no {text_field!r} field; using empty text")
        text = ""
    metadata = {
        k: v for k, v in record.items() if k != text_field and k != id_field
    }
    return Document(doc_id=str(doc_id), text=text, metadata=metadata)


def _iter_txt(path: Path) -> Iterator[Document]:
    files = [path] if path.is_file() else sorted(path.glob("*.txt"))
    for file_path in files:
        # Kept as bytes; the pipeline decodes and reports bad encodings per document.
        yield Document(
            doc_id=file_path.stem,
            text=file_path.read_bytes(),
            metadata={"source_path": str(file_path)},
        )


def _read_text(path: Path) -> str:
    return decode_text(path.read_bytes(), doc_id=str(path))


def _iter_csv(path: Path, text_field: str, id_field: Optional[str]) -> Iterator[Document]:
    reader = csv.DictReader(io.StringIO(_read_text(path)))
    if reader.fieldnames is None or text_field not in reader.fieldnames:
        raise ConfigurationError(f"CSV {path} has no {text_field!r} column")
    for i, record in enumerate(reader):
        yield _record_to_document(record, i, text_field, id_field)


def _iter_json(path: Path, text_field: str, id_field: Optional[str]) -> Iterator[Document]:
    try:
        data = json.loads(_read_text(path))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON corpus {path}: {e}") from e
    if not isinstance(data, list):
        raise ConfigurationError(f"JSON corpus {path} must be a list of objects")
    for i, record in enumerate(data):
        if not isinstance(record, dict):
            logger.error(f"Skipping entry {i} in {path}: not an object")
            continue
        yield _record_to_document(record, i, text_field, id_field)


def _iter_jsonl(path: Path, text_field: str, id_field: Optional[str]) -> Iterator[Document]:
    for i, line in enumerate(_read_text(path).splitlines()):
        if not line.strip():
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError as e:
            logger.error(f"Skipping line {i + 1} in {path}: {e}")
            continue
        if not isinstance(record, dict):
            logger.error(f"Skipping line {i + 1} in {path}: not an object")
            continue
        yield _record_to_document(record, i, text_field, id_field)


def load_corpus(
    path: Union[str, Path],
    format: Optional[str] = None,
    text_field: str = "text",
    id_field: Optional[str] = None,
) -> List[Document]:
    """
    Load documents from disk.

    txt:   a .txt file or a directory of them; the file stem is the id
    csv:   one row per document, other columns become metadata
    json:  a list of objects
    jsonl: one object per line
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Corpus not found: {path}")
    fmt = format or _infer_format(path)
    if fmt not in FORMATS:
        raise ConfigurationError(f"Unknown corpus format {fmt!r}; expected one of {FORMATS}")

    if fmt == "txt":
        docs = list(_iter_txt(path))
    elif fmt == "csv":
        docs = list(_iter_csv(path, text_field, id_field))
    elif fmt == "json":
        docs = list(_iter_json(path, text_field, id_field))
    else:
        docs = list(_iter_jsonl(path, text_field, id_field))

    logger.info(f"Loaded {len(docs)} document(s) from {path}")
    return docs


def documents_from_records(
    records: List[Dict[str, Any]], text_field: str = "text", id_field: Optional[str] = None
) -> List[Document]:
    """Turn in-memory records into Documents the same way the file loaders do."""
    return [
        _record_to_document(record, i, text_field, id_field)
        for i, record in enumerate(records)
    ]
