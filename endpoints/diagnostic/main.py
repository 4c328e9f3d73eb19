import os
import json
import logging
from typing import Any, Dict, Optional

from shared.body_normalizer import BODY_TYPE_XML, normalize_body
from shared.capture import utc_timestamp
from shared.http_event import client_ip, empty_response, header, json_response, parse_event
from shared.xml_metadata import extract_xml_metadata

# Configure logging
logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))

DIAGNOSTIC_ALLOWED_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
NOT_SET = "not-set"


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (bytes, bytearray)):
        return "bytes"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


def _as_string(value: Any) -> Optional[str]:
    if not value:
        return None
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


def describe_request(request: Dict[str, Any]) -> Dict[str, Any]:
    """Everything the server saw for one request, for debugging client integrations."""
    body = request["body"]
    headers = request["headers"]
    content_type = header(headers, "content-type") or NOT_SET
    lowered = content_type.lower()

    body_string = _as_string(body)
    body_json = None
    if body:
        body_json = json.dumps(body_string if isinstance(body, (bytes, bytearray)) else body, indent=2, default=str)

    normalized = normalize_body(headers, body)
    xml_metadata = None
    if normalized.body_type == BODY_TYPE_XML:
        xml_metadata = extract_xml_metadata(normalized.raw_body)

    return {
        "timestamp": utc_timestamp(),
        "method": request["method"],
        "url": request["url"],
        "body": {
            "data": body_string if isinstance(body, (bytes, bytearray)) else body,
            "type": _type_name(body),
            "string": body_string,
            "json": body_json,
            "exists": bool(body),
            "length": len(body_string) if body_string else 0,
        },
        "headers": {
            "all": headers,
            "contentType": content_type,
            "contentLength": header(headers, "content-length") or NOT_SET,
            "userAgent": request.get("userAgent") or NOT_SET,
        },
        "query": request["query"],
        "ip": client_ip(request),
        "normalized": {
            "bodyType": normalized.body_type,
            "body": normalized.body,
            "rawBody": normalized.raw_body,
            "xmlMetadata": xml_metadata,
        },
        "debug": {
            "bodyIsNull": body is None,
            "bodyIsMissing": not request["bodyPresent"],
            "bodyIsEmptyString": body == "",
            "bodyIsEmptyObject": isinstance(body, dict) and not body,
            "isBase64Encoded": request["isBase64Encoded"],
            "contentTypeIncludesJson": "json" in lowered,
            "contentTypeIncludesForm": "form" in lowered,
            "contentTypeIncludesText": "text" in lowered,
            "contentTypeIncludesXml": "xml" in lowered,
        },
    }


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Diagnostic Lambda behind ``/diagnostic``. Accepts any method and never
    writes to storage; returns what the server received:

      {"success": true, "message": "Test capture completed", "data": {...}}
    """
    try:
        request = parse_event(event)
        if request["method"] == "OPTIONS":
            return empty_response(200, DIAGNOSTIC_ALLOWED_METHODS)

        data = describe_request(request)
        logger.info(f"[handler] Diagnostic {data['method']} {data['url']} -> {data['normalized']['bodyType']}")

        return json_response(200, {
            "success": True,
            "message": "Test capture completed",
            "data": data,
        }, DIAGNOSTIC_ALLOWED_METHODS)

    except Exception as e:
        logger.exception("[handler] Error in test capture")
        return json_response(500, {
            "success": False,
            "error": "Internal server error",
            "message": str(e) or "Unknown error",
        }, DIAGNOSTIC_ALLOWED_METHODS)


if __name__ == "__main__":
    test_event = {
        "httpMethod": "POST",
        "path": "/diagnostic",
        "headers": {"Content-Type": "application/x-www-form-urlencoded"},
        "queryStringParameters": {"debug": "1"},
        "body": "a=1&b=2",
        "isBase64Encoded": False,
    }

    result = handler(test_event, None)
    print(json.dumps(json.loads(result["body"]), indent=2))
