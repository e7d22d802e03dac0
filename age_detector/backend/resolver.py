"""Field resolver that reshapes upstream prediction documents.

The upstream service is not under our control: the same concept can sit at
the top level or under ``result``, and ages may come back as ``age`` or
``predicted_age``. Each canonical field is described by an ordered list of
lookup paths; the first path holding a non-null value wins.
"""
import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence, Tuple

import pydantic

from age_detector.backend.errors import MalformedResponseError, UpstreamError
from age_detector.backend.schemas import DEFAULT_MESSAGE, ModelInfo, NormalizedPrediction
from age_detector.config.settings import (
    FALLBACK_AGE,
    FALLBACK_CONFIDENCE,
    FALLBACK_FACES_COUNT,
)

logger = logging.getLogger(__name__)

Path = Tuple[str, ...]

FIELD_RULES: Dict[str, Tuple[Path, ...]] = {
    "age": (("age",), ("result", "age"), ("predicted_age",), ("result", "predicted_age")),
    "confidence": (("confidence",), ("result", "confidence")),
    "raw_prediction": (("raw_prediction",), ("result", "raw_prediction")),
    "gender": (("gender",), ("result", "gender")),
    "message": (("message",), ("result", "message")),
    "timestamp": (("timestamp",), ("result", "timestamp")),
    "faces_count": (("faces_count",), ("result", "faces_count")),
    "scaling_factor": (
        ("model_info", "scaling_factor"),
        ("result", "model_info", "scaling_factor"),
    ),
}

TOP_LEVEL_KEYS = frozenset(
    path[0] for paths in FIELD_RULES.values() for path in paths if path[0] != "result"
)
NUMERIC_FIELDS = ("age", "confidence", "raw_prediction", "faces_count")

GENDER_ALIASES = {
    "male": "male",
    "m": "male",
    "man": "male",
    "female": "female",
    "f": "female",
    "woman": "female",
}


def lookup(document: Dict[str, Any], path: Sequence[str]) -> Any:
    """Follow ``path`` through nested mappings, returning None when it breaks."""
    node: Any = document
    for key in path:
        if not isinstance(node, dict) or key not in node:
            return None
        node = node[key]
    return node


def resolve(document: Dict[str, Any], field: str) -> Any:
    """Return the first non-null value among the candidate paths of ``field``."""
    for path in FIELD_RULES[field]:
        value = lookup(document, path)
        if value is not None:
            return value
    return None


def _as_number(field: str, value: Any) -> float:
    # bool is an int subclass but never a valid measurement
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedResponseError(details=f"Field '{field}' is not numeric")
    if not math.isfinite(value):
        raise MalformedResponseError(details=f"Field '{field}' is not finite")
    return float(value)


def _normalize_gender(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return GENDER_ALIASES.get(value.strip().lower())


def _normalize_timestamp(value: Any) -> str:
    """ISO-8601 string; epoch seconds are converted, missing values become now."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(_as_number("timestamp", value), tz=timezone.utc).isoformat()
        except (OverflowError, ValueError, OSError):
            raise MalformedResponseError(details="Field 'timestamp' is out of range")
    if isinstance(value, str) and value:
        return value
    return datetime.now(timezone.utc).isoformat()


def _passthrough(document: Dict[str, Any]) -> Optional[NormalizedPrediction]:
    """Return the canonical result when the document already has that shape.

    Top-level fields take priority over ``result``, so any of them present
    sends the document through the field rules instead.
    """
    result = document.get("result")
    if document.get("success") is not True or not isinstance(result, dict):
        return None
    if TOP_LEVEL_KEYS.intersection(document):
        return None
    try:
        for field in NUMERIC_FIELDS:
            if field in result:
                _as_number(field, result[field])
        return NormalizedPrediction.model_validate(result)
    except (MalformedResponseError, pydantic.ValidationError):
        return None


def normalize_prediction(document: Any) -> NormalizedPrediction:
    """Reshape any supported upstream document into a NormalizedPrediction.

    Raises:
        MalformedResponseError: the document is not an object, holds no
            age-like or confidence-like field, or holds a non-numeric value
            where a number is required.
        UpstreamError: the upstream reported ``success: false``.
    """
    if not isinstance(document, dict):
        raise MalformedResponseError(details="Response body is not a JSON object")

    if document.get("success") is False:
        logger.error(f"Upstream reported failure: {document.get('error')!r}")
        raise UpstreamError(502)

    canonical = _passthrough(document)
    if canonical is not None:
        return canonical

    raw_age = resolve(document, "age")
    raw_confidence = resolve(document, "confidence")
    if raw_age is None and raw_confidence is None:
        raise MalformedResponseError(details="No age or confidence field in response")

    age_value = _as_number("age", raw_age) if raw_age is not None else float(FALLBACK_AGE)
    age = int(round(age_value))

    confidence = (
        _as_number("confidence", raw_confidence)
        if raw_confidence is not None
        else FALLBACK_CONFIDENCE
    )
    if not 0.0 <= confidence <= 1.0:
        logger.warning(f"Confidence {confidence} outside [0, 1], clamping")
        confidence = min(max(confidence, 0.0), 1.0)

    raw_prediction = resolve(document, "raw_prediction")
    raw_prediction = (
        _as_number("raw_prediction", raw_prediction) if raw_prediction is not None else age_value
    )

    scaling_factor = resolve(document, "scaling_factor")
    scaling_factor = (
        _as_number("scaling_factor", scaling_factor) if scaling_factor is not None else 1.0
    )

    faces_count = resolve(document, "faces_count")
    faces_count = (
        int(_as_number("faces_count", faces_count))
        if faces_count is not None
        else FALLBACK_FACES_COUNT
    )
    if faces_count < 0:
        raise MalformedResponseError(details="Field 'faces_count' is negative")

    message = resolve(document, "message")

    return NormalizedPrediction(
        age=age,
        confidence=confidence,
        raw_prediction=raw_prediction,
        gender=_normalize_gender(resolve(document, "gender")),
        message=message if isinstance(message, str) and message else DEFAULT_MESSAGE,
        model_info=ModelInfo(scaling_factor=scaling_factor),
        timestamp=_normalize_timestamp(resolve(document, "timestamp")),
        faces_count=faces_count,
    )
