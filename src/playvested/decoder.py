"""
Response body decoding.

Each ledger endpoint answers with one of four body shapes:

    identifier - the whole body is a player identifier, verbatim
    totals     - JSON object decoded into TotalsResult
    earning    - JSON object decoded into EarningResult
    is_linked  - the literal text "true"; anything else means False

Structured shapes are decoded with pydantic. Validation errors are turned
into DecodeFailure so callers only deal with the client's own error types.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, ValidationError

from playvested.errors import DecodeFailure
from playvested.identity import is_valid
from playvested.models import EarningResult, TotalsResult

logger = logging.getLogger(__name__)


class ResultShape(str, Enum):
    IDENTIFIER = "identifier"
    TOTALS = "totals"
    EARNING = "earning"
    IS_LINKED = "is_linked"


def decode_identifier(body: str) -> str:
    """
    Return the body as a player identifier.

    Raises:
        DecodeFailure: If the body is not a usable identifier (empty, or the
            legacy all-zero placeholder).
    """
    if not is_valid(body):
        raise DecodeFailure(ResultShape.IDENTIFIER.value, f"not an identifier: {body!r}")
    return body


def _decode_model(model: type[BaseModel], shape: ResultShape, body: str) -> Any:
    try:
        return model.model_validate_json(body)
    except ValidationError as e:
        logger.debug("Rejected %s body %r: %s", shape.value, body, e)
        raise DecodeFailure(shape.value, str(e)) from e


def decode_totals(body: str) -> TotalsResult:
    """Decode a ``{"lifetime": ..., "filtered": ...}`` body."""
    return _decode_model(TotalsResult, ResultShape.TOTALS, body)


def decode_earning(body: str) -> EarningResult:
    """Decode a ``{"amountEarned": ..., "status": ...}`` body."""
    return _decode_model(EarningResult, ResultShape.EARNING, body)


def decode_is_linked(body: str | None) -> bool:
    """Return True only for the exact body ``"true"``; never fails."""
    return body == "true"


def decode(shape: ResultShape, body: str) -> Any:
    """
    Decode ``body`` according to ``shape``.

    Args:
        shape: Expected body shape.
        body: Raw response text.

    Returns:
        str, TotalsResult, EarningResult or bool depending on ``shape``.

    Raises:
        DecodeFailure: For malformed identifier, totals or earning bodies.
    """
    if shape is ResultShape.IDENTIFIER:
        return decode_identifier(body)
    if shape is ResultShape.TOTALS:
        return decode_totals(body)
    if shape is ResultShape.EARNING:
        return decode_earning(body)
    return decode_is_linked(body)
