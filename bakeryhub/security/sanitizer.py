"""Cleaning of model-supplied tool arguments."""

import math
from typing import Any, Dict

from bakeryhub.infra.config import config

MAX_STRING_LENGTH = config.MAX_PARAM_STRING_LENGTH

_DROP = object()


def _clean_value(value: Any, max_length: int) -> Any:
    if value is None or callable(value):
        return _DROP
    # bool is a subclass of int, check it first so True never becomes 1
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        # Strip again after truncating so a second pass is a no-op
        return value.strip()[:max_length].strip()
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return 0 if math.isnan(value) else value
    if isinstance(value, dict):
        return _clean_mapping(value, max_length)
    if isinstance(value, (list, tuple)):
        return [
            _clean_mapping(item, max_length) if isinstance(item, dict) else item
            for item in value
        ]
    return _DROP


def _clean_mapping(raw: Dict[Any, Any], max_length: int) -> Dict[str, Any]:
    cleaned = {}
    for key, value in raw.items():
        value = _clean_value(value, max_length)
        if value is not _DROP:
            cleaned[str(key)] = value
    return cleaned


def sanitize_params(raw: Any, max_length: int = MAX_STRING_LENGTH) -> Dict[str, Any]:
    """
    Return a cleaned copy of model-supplied tool arguments.

    - keys whose value is ``None`` or callable are dropped
    - strings are trimmed and cut to ``max_length`` characters
    - NaN becomes 0; booleans and other numbers pass through
    - nested dicts are cleaned recursively, including dicts inside lists;
      other list elements pass through unchanged
    - values of any other type are dropped
    - anything that is not a dict at the top level yields ``{}``

    The function is pure and idempotent.
    """
    if not isinstance(raw, dict):
        return {}
    return _clean_mapping(raw, max_length)
