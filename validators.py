# backend/validators.py

import base64
import binascii
import logging
from typing import Any, Union

from pydantic import ValidationError

from errors import InvalidInput
from schemas import MAX_CONTENT_BYTES, AnalyzeRequest, ChatRequest

logger = logging.getLogger(__name__)

PDF = "application/pdf"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TEXT_TYPES = ("text/plain", "text/csv")
ALLOWED_FILE_TYPES = (PDF, DOCX) + TEXT_TYPES
MAX_UPLOAD_BYTES = MAX_CONTENT_BYTES

# Leading bytes each binary format must start with
SIGNATURES = {
    PDF: b"%PDF-",
    DOCX: b"PK\x03\x04",
}

PAYLOAD_MODELS = {
    "chat": ChatRequest,
    "analyze": AnalyzeRequest,
}


def validate_payload(kind: str, raw: Any):
    """Turn a raw JSON body into a bounds-checked payload for `kind`.

    Raises InvalidInput with a generic message; schema details only go to the log.
    """
    model = PAYLOAD_MODELS.get(kind)
    if model is None:
        raise ValueError(f"Unknown payload kind: {kind}")
    if not isinstance(raw, dict):
        raise InvalidInput()
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        logger.info(f"Rejected {kind} payload: {e.error_count()} validation error(s)")
        raise InvalidInput()


def _raw_head(content: Union[str, bytes]) -> bytes:
    if isinstance(content, bytes):
        return content[:8]
    return content[:8].encode("latin-1", errors="ignore")


def _base64_head(content: Union[str, bytes]) -> bytes:
    # 12 base64 chars decode to 9 bytes, enough for any signature above
    head = content[:12]
    try:
        return base64.b64decode(head, validate=True)
    except (binascii.Error, ValueError):
        return b""


def has_signature(content: Union[str, bytes], signature: bytes) -> bool:
    """True if content starts with signature, raw or base64-encoded."""
    return _raw_head(content).startswith(signature) or _base64_head(content).startswith(signature)


def validate_content_type(content: Union[str, bytes], file_type: str) -> bool:
    """Check that content plausibly matches the declared file type."""
    if not content or file_type not in ALLOWED_FILE_TYPES:
        return False

    if file_type in SIGNATURES:
        return has_signature(content, SIGNATURES[file_type])

    # Text types: no binary signatures, no NUL bytes, valid UTF-8
    if any(has_signature(content, sig) for sig in SIGNATURES.values()):
        return False
    if isinstance(content, bytes):
        if b"\x00" in content:
            return False
        try:
            content.decode("utf-8")
        except UnicodeDecodeError:
            return False
        return True
    return "\x00" not in content
