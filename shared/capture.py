import time
import uuid
import logging
from datetime import datetime, timezone
from typing import Any, Dict, NamedTuple, Optional

from botocore.exceptions import BotoCoreError, ClientError

from shared.body_normalizer import BODY_TYPE_XML, normalize_body
from shared.db import DatabaseConnector
from shared.http_event import client_ip, empty_response, header, json_response, parse_event
from shared.xml_metadata import extract_xml_metadata

logger = logging.getLogger(__name__)

CAPTURE_ALLOWED_METHODS = "POST, OPTIONS"

FORWARDING_HEADERS = ("x-real-ip", "x-forwarded-proto", "x-forwarded-host")


class CaptureProfile(NamedTuple):
    """Settings that distinguish one capture endpoint from another."""

    name: str
    collection: str = "api_requests"
    extract_xml_metadata: bool = True
    collection_type: Optional[str] = None
    message: str = "Request data captured successfully"
    xml_message: Optional[str] = None
    saved_message: str = "Data saved to Firestore successfully"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_request_id() -> str:
    """Time-based prefix plus a random suffix, e.g. ``1718000000000-3f9a1c2b7``."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


def _forwarding_info(request: Dict[str, Any]) -> Dict[str, str]:
    info = {name: header(request["headers"], name) for name in FORWARDING_HEADERS}
    info["gateway-request-id"] = request.get("requestId")
    return {k: v for k, v in info.items() if v}


def build_capture_record(request: Dict[str, Any], profile: CaptureProfile) -> Dict[str, Any]:
    headers = request["headers"]
    normalized = normalize_body(headers, request["body"])

    record = {
        "timestamp": utc_timestamp(),
        "method": request["method"],
        "url": request["url"],
        "headers": headers,
        "query": request["query"],
        "body": normalized.body,
        "rawBody": normalized.raw_body,
        "bodyType": normalized.body_type,
        "contentType": header(headers, "content-type"),
        "contentLength": header(headers, "content-length"),
        "clientIp": client_ip(request),
        "userAgent": request.get("userAgent"),
        "forwarding": _forwarding_info(request),
    }

    # Absent header-derived values are left out rather than stored as null
    for key in ("contentType", "contentLength", "clientIp", "userAgent"):
        if record[key] is None:
            del record[key]

    if profile.extract_xml_metadata and normalized.body_type == BODY_TYPE_XML:
        xml_metadata = extract_xml_metadata(normalized.raw_body)
        if xml_metadata is not None:
            record["xmlMetadata"] = xml_metadata

    return record


def _failed_outcome(error: Exception) -> Dict[str, Any]:
    return {
        "success": False,
        "error": "Failed to save to Firestore",
        "message": str(error) or "Unknown Firestore error",
    }


def persist_capture(connector: DatabaseConnector, record: Dict[str, Any], profile: CaptureProfile) -> Dict[str, Any]:
    """Write the record and describe the outcome. Storage faults never escape."""
    store = connector.get_connection()

    document = {
        **record,
        "createdAt": utc_timestamp(),
        "requestId": new_request_id(),
    }
    if profile.collection_type:
        document["collectionType"] = profile.collection_type

    try:
        document_id = store.collection(profile.collection).add(document)
    except (ClientError, BotoCoreError) as e:
        logger.error(f"[{profile.name}] Firestore error: {e}")
        return _failed_outcome(e)
    except Exception as e:
        # Item preparation (ValueError/TypeError from undefined or unserializable
        # values) and anything else the client raises outside botocore's hierarchy
        logger.exception(f"[{profile.name}] Unexpected error while saving capture")
        return _failed_outcome(e)

    logger.info(f"[{profile.name}] Stored capture {document['requestId']} as {document_id}")
    return {
        "success": True,
        "documentId": document_id,
        "requestId": document["requestId"],
        "message": profile.saved_message,
    }


def _internal_error(error: Exception) -> Dict[str, Any]:
    return json_response(500, {
        "success": False,
        "error": "Internal server error",
        "message": str(error) or "Unknown error",
    }, CAPTURE_ALLOWED_METHODS)


def handle_capture(event: Dict[str, Any], connector: DatabaseConnector, profile: CaptureProfile) -> Dict[str, Any]:
    """Capture one inbound request and return an API Gateway proxy response."""
    try:
        request = parse_event(event)
    except Exception as e:
        logger.exception(f"[{profile.name}] Could not read inbound event")
        return _internal_error(e)
    method = request["method"]

    if method not in ("POST", "OPTIONS"):
        logger.info(f"[{profile.name}] Rejected method {method or '<none>'}")
        return json_response(405, {
            "error": "Method not allowed. Only POST requests are accepted.",
            "allowedMethod": "POST",
            "receivedMethod": method or None,
        }, CAPTURE_ALLOWED_METHODS)

    if method == "OPTIONS":
        return empty_response(200, CAPTURE_ALLOWED_METHODS)

    try:
        record = build_capture_record(request, profile)
    except Exception as e:
        logger.exception(f"[{profile.name}] Error capturing request data")
        return _internal_error(e)

    logger.info(
        f"[{profile.name}] Captured {record['bodyType']} body "
        f"({len(record['rawBody'] or '')} chars) from {record.get('clientIp', 'unknown')}"
    )

    outcome = persist_capture(connector, record, profile)

    message = profile.message
    if profile.xml_message and record["bodyType"] == BODY_TYPE_XML:
        message = profile.xml_message

    return json_response(200, {
        "success": True,
        "message": message,
        "data": record,
        "firestore": outcome,
    }, CAPTURE_ALLOWED_METHODS)
