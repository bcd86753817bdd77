"""
Snapshot helpers for router RCI responses
"""
import copy
import hashlib
import re
from typing import Any, Dict, List, Optional


def deep_merge(target: Dict[str, Any], source: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge source into target in place

    Nested mappings present on both sides are merged key by key; any other
    value from source overwrites the one in target.

    Returns:
        The target mapping
    """
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            deep_merge(target[key], value)
        else:
            target[key] = value
    return target


def merge_snapshots(parts: Any) -> Dict[str, Any]:
    """Deep-merge a single RCI result or an ordered list of them into one snapshot"""
    # parts are copied so the merged snapshot never aliases the inputs
    if isinstance(parts, dict):
        parts = [parts]
    result: Dict[str, Any] = {}
    for part in parts or []:
        if isinstance(part, dict):
            deep_merge(result, copy.deepcopy(part))
    return result


def dig(data: Any, *path: str, default: Any = None) -> Any:
    """Follow path segments through nested mappings"""
    for key in path:
        if not isinstance(data, dict) or key not in data:
            return default
        data = data[key]
    return data


def table_rows(value: Any, key_field: str) -> List[Dict[str, Any]]:
    """
    Normalize a router table to a list of row mappings

    Tables arrive either as a list of rows or as a mapping keyed by the
    row identifier. For the mapping form the key is copied into key_field
    unless the row already carries it.
    """
    if isinstance(value, list):
        return [row for row in value if isinstance(row, dict)]
    if isinstance(value, dict):
        rows = []
        for key, row in value.items():
            if not isinstance(row, dict):
                continue
            if key_field not in row:
                row = {**row, key_field: key}
            rows.append(row)
        return rows
    return []


def numeric_id_key(identifier: Any) -> int:
    """Sort key from the digits of an identifier ("Policy10" -> 10, no digits -> 0)"""
    digits = re.sub(r"\D", "", str(identifier or ""))
    return int(digits) if digits else 0


def normalize_mac(mac: Optional[str]) -> str:
    return (mac or "").strip().lower()


def challenge_response(login: str, password: str, realm: str, challenge: str) -> str:
    """
    Compute the password field for the router's challenge-response login

    md5("{login}:{realm}:{password}") is hex-encoded, prefixed with the
    challenge and hashed again with sha256.
    """
    inner = hashlib.md5(f"{login}:{realm}:{password}".encode()).hexdigest()
    return hashlib.sha256(f"{challenge}{inner}".encode()).hexdigest()
