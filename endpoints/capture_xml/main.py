import os
import json
import logging
from typing import Any, Dict

from shared.capture import CaptureProfile, handle_capture
from shared.db import DatabaseConnector

# Configure logging
logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))

# Environment variables
CAPTURE_TABLE = os.environ.get("CAPTURE_TABLE", "api_requests")

PROFILE = CaptureProfile(
    name="capture-xml",
    collection=CAPTURE_TABLE,
    extract_xml_metadata=True,
    collection_type="xml_capture",
    xml_message="XML data captured successfully",
    saved_message="XML data saved to Firestore successfully",
)

connector = DatabaseConnector()


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    XML capture Lambda behind ``POST /capture-xml``.

    Same flow as ``/capture`` but tags stored documents with
    ``collectionType: xml_capture`` and reports XML-specific messages when
    the body is classified as XML. Integrations that post XML as
    ``text/plain`` are still detected by the ``<?xml`` prefix.
    """
    logger.info("[handler] XML capture invoked")
    return handle_capture(event, connector, PROFILE)


if __name__ == "__main__":
    test_event = {
        "version": "2.0",
        "rawPath": "/capture-xml",
        "rawQueryString": "",
        "headers": {"content-type": "text/plain"},
        "requestContext": {"http": {"method": "POST", "path": "/capture-xml", "sourceIp": "127.0.0.1"}},
        "body": '<?xml version="1.0" encoding="UTF-8"?><order><id>42</id></order>',
        "isBase64Encoded": False,
    }

    result = handler(test_event, None)
    print(json.dumps(result, indent=2))
