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

PROFILE = CaptureProfile(name="capture", collection=CAPTURE_TABLE)

connector = DatabaseConnector()


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Capture Lambda behind ``POST /capture``.

    Normalizes the request body (JSON, XML, form or text), adds XML
    declaration metadata when the body is XML and stores the capture record.
    The response echoes the record together with the storage outcome:

      {
        "success": true,
        "message": "Request data captured successfully",
        "data": {...capture record...},
        "firestore": {"success": true, "documentId": "...", "requestId": "...", "message": "..."}
      }
    """
    logger.info(f"[handler] Capture invoked with event keys: {list(event.keys()) if isinstance(event, dict) else 'N/A'}")
    return handle_capture(event, connector, PROFILE)


if __name__ == "__main__":
    # Local test event (needs CAPTURE_SERVICE_ACCOUNT in the environment)
    test_event = {
        "httpMethod": "POST",
        "path": "/capture",
        "headers": {"Content-Type": "application/json", "User-Agent": "local-test"},
        "body": json.dumps({"a": 1}),
        "isBase64Encoded": False,
    }

    result = handler(test_event, None)
    print(json.dumps(result, indent=2))
