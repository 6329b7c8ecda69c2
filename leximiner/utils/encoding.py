import logging
from typing import Optional, Union

import chardet

from ..exceptions import DocumentProcessingError

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 0.5


def decode_text(raw: Union[str, bytes], doc_id: Optional[str] = None) -> str:
    """
    Turn document bytes into text.

    UTF-8 (with or without BOM) is tried first, then the encoding chardet
    detects with at least MIN_CONFIDENCE.

    Raises:
        DocumentProcessingError: if no encoding decodes the bytes cleanly.
    """
    if isinstance(raw, str):
        return raw
    if raw is None:
        return ""
    if not isinstance(raw, (bytes, bytearray)):
        raise DocumentProcessingError(
            f"Document text must be str or bytes, got {type(raw).__name__}",
            doc_id=doc_id,
            stage="decode",
        )

    try:
        return bytes(raw).decode("utf-8-sig")
    except UnicodeDecodeError:
        pass

    detected = chardet.detect(bytes(raw))
    encoding = detected.get("encoding")
    confidence = detected.get("confidence") or 0.0
    if encoding and confidence >= MIN_CONFIDENCE:
        try:
            text = bytes(raw).decode(encoding)
            logger.debug(f"Decoded {doc_id or 'document'} as {encoding} ({confidence:.2f})")
            return text
        except (UnicodeDecodeError, LookupError) as e:
            raise DocumentProcessingError(
                f"Could not decode as detected {encoding}: {e}",
                doc_id=doc_id,
                stage="decode",
            ) from e

    raise DocumentProcessingError(
        f"Undecodable text (detected {encoding!r}, confidence {confidence:.2f})",
        doc_id=doc_id,
        stage="decode",
    )
