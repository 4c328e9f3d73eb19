import json
import math
import logging
from typing import Any, Dict, NamedTuple, Optional
from urllib.parse import parse_qsl

logger = logging.getLogger(__name__)

BODY_TYPE_JSON = "json"
BODY_TYPE_XML = "xml"
BODY_TYPE_FORM = "form"
BODY_TYPE_TEXT = "text"
BODY_TYPE_UNKNOWN = "unknown"

BODY_TYPES = (BODY_TYPE_JSON, BODY_TYPE_XML, BODY_TYPE_FORM, BODY_TYPE_TEXT, BODY_TYPE_UNKNOWN)

XML_DECLARATION = "<?xml"


class NormalizedBody(NamedTuple):
    raw_body: Optional[str]
    body_type: str
    body: Any


def raw_body_of(body: Any) -> Optional[str]:
    """String form of a request body, or None when there were no body bytes."""
    if body is None:
        return None
    if isinstance(body, (bytes, bytearray)):
        text = bytes(body).decode("utf-8", errors="replace")
    elif isinstance(body, str):
        text = body
    else:
        text = json.dumps(body, indent=2, ensure_ascii=False, default=str)
    return text or None


def classify(content_type: Optional[str], raw_body: Optional[str]) -> str:
    """Pick a body type. Checks run in priority order and the first match wins."""
    content_type = (content_type or "").lower()
    looks_like_xml = bool(raw_body) and raw_body.strip().startswith(XML_DECLARATION)

    if "application/json" in content_type:
        return BODY_TYPE_JSON
    if "xml" in content_type or ("text/plain" in content_type and looks_like_xml) or looks_like_xml:
        return BODY_TYPE_XML
    if "application/x-www-form-urlencoded" in content_type or "multipart/form-data" in content_type:
        return BODY_TYPE_FORM
    if "text/plain" in content_type:
        return BODY_TYPE_TEXT
    return BODY_TYPE_UNKNOWN


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def _finite_float(text: str) -> float:
    value = float(text)
    if math.isinf(value):
        raise ValueError(f"{text} is out of range for a JSON number")
    return value


def _parse_json(raw_body: str) -> Any:
    try:
        return json.loads(raw_body, parse_constant=_reject_constant, parse_float=_finite_float)
    except (ValueError, TypeError) as e:
        logger.debug(f"JSON body did not parse, keeping raw string: {e}")
        return raw_body


def _parse_form(raw_body: str, content_type: str) -> Any:
    if "multipart/form-data" in content_type.lower():
        # Multipart parts are kept verbatim
        return raw_body
    try:
        return dict(parse_qsl(raw_body, keep_blank_values=True, strict_parsing=True))
    except ValueError as e:
        logger.debug(f"Form body did not parse, keeping raw string: {e}")
        return raw_body


def normalize_body(headers: Dict[str, Any], body: Any) -> NormalizedBody:
    """Classify and parse a request body.

    ``headers`` must use lowercased names. ``body`` is whatever the event
    delivered: a string, bytes, an already-structured object, or None.
    Malformed payloads never raise; they fall back to the raw string.
    """
    content_type = headers.get("content-type") or ""
    if isinstance(content_type, list):
        content_type = ", ".join(content_type)

    raw_body = raw_body_of(body)
    body_type = classify(content_type, raw_body)

    if raw_body is None:
        parsed = None
    elif body_type == BODY_TYPE_JSON:
        parsed = _parse_json(raw_body)
    elif body_type == BODY_TYPE_FORM:
        parsed = body if isinstance(body, dict) else _parse_form(raw_body, content_type)
    elif isinstance(body, (dict, list)):
        parsed = body
    else:
        parsed = raw_body

    return NormalizedBody(raw_body, body_type, parsed)
