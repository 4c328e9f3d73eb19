"""Helpers for API Gateway proxy events (REST v1 and HTTP API v2) and responses."""

import json
import base64
import binascii
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlencode

HeaderValue = Union[str, List[str]]

CORS_ALLOW_HEADERS = "Content-Type"


def cors_headers(allowed_methods: str) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": allowed_methods,
        "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
    }


def json_response(status_code: int, payload: Dict[str, Any], allowed_methods: str) -> Dict[str, Any]:
    headers = cors_headers(allowed_methods)
    headers["Content-Type"] = "application/json"
    return {
        "statusCode": status_code,
        "headers": headers,
        "body": json.dumps(payload, default=str),
    }


def empty_response(status_code: int, allowed_methods: str) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": cors_headers(allowed_methods),
        "body": "",
    }


def _merge_multi(single: Optional[Dict[str, Any]], multi: Optional[Dict[str, List[str]]], lower: bool) -> Dict[str, HeaderValue]:
    merged: Dict[str, HeaderValue] = {}
    for name, value in (single or {}).items():
        if value is None:
            continue
        merged[name.lower() if lower else name] = value
    # multi-value maps win so repeated entries are not collapsed
    for name, values in (multi or {}).items():
        if not values:
            continue
        key = name.lower() if lower else name
        merged[key] = values[0] if len(values) == 1 else list(values)
    return merged


def _first(value: Optional[HeaderValue]) -> Optional[str]:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _decode_body(event: Dict[str, Any]) -> Any:
    body = event.get("body")
    if not event.get("isBase64Encoded") or not isinstance(body, str):
        return body
    try:
        return base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError):
        # Leave it as delivered; the normalizer treats it as text
        return body


def parse_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten a proxy event into the request fields the handlers use.

    Works for REST API (``httpMethod``/``path``) and HTTP API
    (``requestContext.http``/``rawPath``) payloads as well as direct
    invocations that only carry ``method``/``headers``/``body``.

    HTTP API events keep ``rawQueryString`` verbatim in ``url``. REST API
    events carry no raw query string, so ``url`` is rebuilt from the decoded
    parameters with ``urlencode``: original percent-encoding is not kept.
    """
    if not isinstance(event, dict):
        raise ValueError("Event must be a dict")

    request_context = event.get("requestContext") or {}
    http_context = request_context.get("http") or {}
    identity = request_context.get("identity") or {}

    method = event.get("httpMethod") or http_context.get("method") or event.get("method") or ""
    method = method.upper()

    headers = _merge_multi(event.get("headers"), event.get("multiValueHeaders"), lower=True)
    if event.get("cookies") and "cookie" not in headers:
        headers["cookie"] = "; ".join(event["cookies"])

    query = _merge_multi(
        event.get("queryStringParameters"),
        event.get("multiValueQueryStringParameters"),
        lower=False,
    )

    if "rawPath" in event:
        url = event["rawPath"]
        if event.get("rawQueryString"):
            url = f"{url}?{event['rawQueryString']}"
    else:
        url = event.get("path") or http_context.get("path") or "/"
        if query:
            url = f"{url}?{urlencode(query, doseq=True)}"

    return {
        "method": method,
        "url": url,
        "headers": headers,
        "query": query,
        "body": _decode_body(event),
        "bodyPresent": "body" in event,
        "isBase64Encoded": bool(event.get("isBase64Encoded")),
        "sourceIp": http_context.get("sourceIp") or identity.get("sourceIp"),
        "userAgent": _first(headers.get("user-agent")) or http_context.get("userAgent") or identity.get("userAgent"),
        "requestId": request_context.get("requestId"),
    }


def header(headers: Dict[str, HeaderValue], name: str) -> Optional[str]:
    """Single value of a lowercased header, joining repeats with a comma."""
    value = headers.get(name.lower())
    if isinstance(value, list):
        return ", ".join(value)
    return value


def client_ip(request: Dict[str, Any]) -> Optional[str]:
    forwarded = header(request["headers"], "x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.get("sourceIp")
