import os
import logging
from typing import Any, Dict

from shared.capture import CaptureProfile, handle_capture
from shared.db import DatabaseConnector

# Configure logging
logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))

# Environment variables
CAPTURE_TABLE = os.environ.get("CAPTURE_TABLE", "api_requests")

# Plain capture: XML bodies are classified but not inspected
PROFILE = CaptureProfile(
    name="capture-save",
    collection=CAPTURE_TABLE,
    extract_xml_metadata=False,
)

connector = DatabaseConnector()


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """Capture Lambda behind ``POST /capture-save``; stores the record without XML metadata."""
    path = (event.get("path") or event.get("rawPath")) if isinstance(event, dict) else "N/A"
    logger.info(f"[handler] Capture-save invoked for {path}")
    return handle_capture(event, connector, PROFILE)
