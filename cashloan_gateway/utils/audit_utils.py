"""Helpers for building activity log entries"""

import hashlib
import json
from datetime import datetime
from typing import Any, Dict, Optional


def diff_objects(before: Optional[Dict[str, Any]], after: Optional[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Return {field: {"before": old, "after": new}} for every field whose JSON form changed"""
    before = before or {}
    after = after or {}
    result = {}

    for key in sorted(set(before) | set(after)):
        prev = before.get(key)
        new = after.get(key)
        if json.dumps(prev, sort_keys=True, default=str) != json.dumps(new, sort_keys=True, default=str):
            result[key] = {"before": prev, "after": new}

    return result


def day_hash(org_id: str, timestamp: datetime) -> str:
    """Stable per-organisation, per-day key (sha256 of "org:YYYY-MM-DD")"""
    day_key = timestamp.date().isoformat()
    return hashlib.sha256(f"{org_id}:{day_key}".encode()).hexdigest()
