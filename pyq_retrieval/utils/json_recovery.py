"""
Two-stage decoding of durable cache payloads.

Payloads are JSON text of shape {"value": <any>, "timestamp": <epoch-ms>}.
Stage one is a strict json.loads. When that fails (truncated writes,
concatenated garbage), stage two runs one small extractor per value kind
against the raw text and returns the first `value` field it can recover.
"""
import json
import re
from typing import Any, Callable, List, Tuple
from pyq_retrieval.utils.exceptions import MalformedCacheValueError


# (found, value). A plain Optional can't tell "absent" from a recovered null.
Extraction = Tuple[bool, Any]

_STRING_VALUE = re.compile(r'"value"\s*:\s*"((?:[^"\\]|\\.)*)"')
_NUMBER_VALUE = re.compile(r'"value"\s*:\s*(-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?)(?=\s*[,}\]]|\s*$)')
_BOOLEAN_VALUE = re.compile(r'"value"\s*:\s*(true|false)\b')
_NULL_VALUE = re.compile(r'"value"\s*:\s*null\b')


def extract_string_value(raw: str) -> Extraction:
    """Recover a string `value`, unescaping JSON escapes when possible."""
    match = _STRING_VALUE.search(raw)
    if not match:
        return False, None
    body = match.group(1)
    try:
        return True, json.loads(f'"{body}"')
    except ValueError:
        return True, body


def extract_number_value(raw: str) -> Extraction:
    """Recover an int or float `value`."""
    match = _NUMBER_VALUE.search(raw)
    if not match:
        return False, None
    literal = match.group(1)
    if re.fullmatch(r"-?\d+", literal):
        return True, int(literal)
    return True, float(literal)


def extract_boolean_value(raw: str) -> Extraction:
    match = _BOOLEAN_VALUE.search(raw)
    if not match:
        return False, None
    return True, match.group(1) == "true"


def extract_null_value(raw: str) -> Extraction:
    if _NULL_VALUE.search(raw):
        return True, None
    return False, None


EXTRACTORS: List[Callable[[str], Extraction]] = [
    extract_string_value,
    extract_number_value,
    extract_boolean_value,
    extract_null_value,
]


def recover_value(raw: str) -> Extraction:
    """Run the typed extractors in order; first hit wins."""
    for extractor in EXTRACTORS:
        found, value = extractor(raw)
        if found:
            return True, value
    return False, None


def decode_cache_payload(raw: Any) -> Any:
    """
    Decode a durable cache payload into the cached value.

    Args:
        raw: Payload as stored (str or bytes)

    Returns:
        The cached value (may be None when None was cached)

    Raises:
        MalformedCacheValueError: If neither stage yields a value
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if not isinstance(raw, str):
        raise MalformedCacheValueError(f"Unsupported payload type: {type(raw).__name__}")

    try:
        parsed = json.loads(raw)
    except ValueError:
        found, value = recover_value(raw)
        if found:
            return value
        raise MalformedCacheValueError(f"Unrecoverable cache payload ({len(raw)} chars)")

    if isinstance(parsed, dict) and "value" in parsed:
        return parsed["value"]
    return parsed


def decode_cache_timestamp(raw: Any) -> Any:
    """Best-effort read of the payload timestamp in epoch milliseconds, or None."""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if not isinstance(raw, str):
        return None
    try:
        parsed = json.loads(raw)
        if isinstance(parsed, dict):
            return parsed.get("timestamp")
        return None
    except ValueError:
        match = re.search(r'"timestamp"\s*:\s*(\d+)', raw)
        return int(match.group(1)) if match else None
