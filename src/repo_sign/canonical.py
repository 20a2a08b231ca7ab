"""Canonical JSON encoding (RFC 8785 / JCS) of metadata payloads.

Signers and verifiers hash and sign exactly these bytes, so two parties
encoding the same logical document always agree byte-for-byte:

- object members sorted by key
- no insignificant whitespace
- ES6 canonical number form
- minimal string escapes
- arrays kept in their original order
"""

from typing import Any, Optional, cast

import jcs
from pydantic import BaseModel

from .errors import SerializationError


def to_json_data(payload: Any) -> Any:
    """Convert a payload into plain JSON data.

    Pydantic models are dumped in JSON mode using field aliases (so ``type_``
    becomes ``_type``); optional fields that were never set are omitted. Other values are
    passed through unchanged.
    """
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json", by_alias=True)
    return payload


def encode(payload: Any, role: Optional[str] = None) -> bytes:
    """Encode a payload into canonical JSON bytes.

    Args:
        payload: Pydantic model or plain JSON-compatible data
        role: Role name attached to any error for context

    Returns:
        UTF-8 canonical JSON

    Raises:
        SerializationError: If the payload holds values JSON cannot represent
    """
    try:
        data = to_json_data(payload)
        return cast(bytes, jcs.canonicalize(data))
    except (TypeError, ValueError, OverflowError) as e:
        raise SerializationError(str(e), role=role) from e
