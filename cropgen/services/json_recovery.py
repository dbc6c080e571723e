"""Recover a JSON array of records from free-form model output.

Each strategy takes the raw text and returns a list of records, or None when
it cannot make sense of the text. `parse_records` tries them in order and
stops at the first that yields something.
"""
import json
import logging
import re
from typing import Any, Callable, List, Optional

from cropgen.core.errors import MalformedGenerationOutput

logger = logging.getLogger("cropgen.json_recovery")

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_FLAT_OBJECT_RE = re.compile(r"\{[^{}]*\}")
_BARE_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_]\w*)\s*:")


def _as_records(value: Any) -> Optional[List[Any]]:
    if isinstance(value, list):
        return value or None
    if isinstance(value, dict):
        # {"tips": [{...}, ...]} style wrappers; a bare record keeps its own lists
        for v in value.values():
            if isinstance(v, list) and v and all(isinstance(i, dict) for i in v):
                return v
        return [value]
    return None


def _loads(text: str) -> Any:
    return json.loads(text, strict=False)


def parse_strict(text: str) -> Optional[List[Any]]:
    try:
        return _as_records(_loads(text))
    except ValueError:
        return None


def clean_json_text(text: str) -> Optional[str]:
    s = _FENCE_RE.sub("", text).strip()
    start, end = s.find("["), s.rfind("]")
    if start == -1 or end == -1 or end < start:
        return None
    s = s[start:end + 1]
    s = _TRAILING_COMMA_RE.sub(r"\1", s)
    return _CONTROL_CHARS_RE.sub("", s)


def parse_cleaned(text: str) -> Optional[List[Any]]:
    cleaned = clean_json_text(text)
    if cleaned is None:
        return None
    try:
        return _as_records(_loads(cleaned))
    except ValueError:
        return None


def repair_object(fragment: str) -> str:
    s = _TRAILING_COMMA_RE.sub(r"\1", fragment)
    s = s.replace("'", '"')
    return _BARE_KEY_RE.sub(r'\1"\2":', s)


def parse_objects(text: str) -> Optional[List[Any]]:
    objects = []
    for fragment in _FLAT_OBJECT_RE.findall(text):
        for candidate in (fragment, repair_object(fragment)):
            try:
                obj = _loads(candidate)
            except ValueError:
                continue
            if isinstance(obj, dict):
                objects.append(obj)
            break
    return objects or None


STRATEGIES: List[Callable[[str], Optional[List[Any]]]] = [
    parse_strict,
    parse_cleaned,
    parse_objects,
]


def parse_records(text: Optional[str], context: str = "Unknown") -> List[Any]:
    """Return the records found in `text` or raise MalformedGenerationOutput."""
    if not isinstance(text, str) or not text.strip():
        raise MalformedGenerationOutput(context)

    for strategy in STRATEGIES:
        records = strategy(text)
        if records is not None:
            return records
        logger.info("%s: %s found nothing, escalating", context, strategy.__name__)

    raise MalformedGenerationOutput(context)
