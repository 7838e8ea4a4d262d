# app/core/jsonfields.py
"""
Helpers for the JSON text columns (rules, exclusions, notes, configs).

Stored payloads may be corrupt. Reads never raise: they log a warning and
fall back to a default so live compliance calculations keep working.
"""

import json
import logging
from typing import Any, List, Optional

logger = logging.getLogger(__name__)


def load_json(raw: Optional[str], default: Any = None, context: str = "") -> Any:
    """Parse a stored JSON string, returning default on empty or bad data"""
    if raw is None or raw == "":
        return default
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except (ValueError, TypeError) as e:
        logger.warning(f"Malformed stored JSON{f' in {context}' if context else ''}: {e}")
        return default


def load_json_list(raw: Optional[str], context: str = "") -> Optional[List[Any]]:
    """Parse a stored JSON list; anything that is not a list counts as absent"""
    value = load_json(raw, default=None, context=context)
    if value is None:
        return None
    if not isinstance(value, list):
        logger.warning(
            f"Expected JSON list{f' in {context}' if context else ''}, got {type(value).__name__}"
        )
        return None
    return value


def dump_json(value: Any) -> Optional[str]:
    """Serialize a native structure for storage; strings pass through unchanged"""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value)
