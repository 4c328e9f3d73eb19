"""Lightweight XML sniffing: reads the declaration and first tag by text search.

This is not an XML parser. ``rootElement`` is the first tag-like token in
the document, which is usually but not always the root.
"""

import re
from typing import Any, Dict, Optional

TAG_NAME = re.compile(r"<([a-zA-Z][a-zA-Z0-9]*)")


def extract_xml_metadata(raw_body: Optional[str]) -> Optional[Dict[str, Any]]:
    if not raw_body:
        return None

    start = raw_body.find("<?xml")
    if start == -1:
        return None
    end = raw_body.find("?>", start)
    if end == -1:
        return None

    declaration = raw_body[start:end + 2]
    root_match = TAG_NAME.search(raw_body)

    return {
        "declaration": declaration,
        "rootElement": root_match.group(1) if root_match else "unknown",
        "length": len(raw_body),
        "hasDoctype": "<!DOCTYPE" in raw_body,
        "encoding": "UTF-8" if 'encoding="UTF-8"' in declaration else "unknown",
    }
