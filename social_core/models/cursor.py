"""
Opaque pagination cursors.

A cursor is the url-safe base64 of a small versioned JSON document holding the
sort key of the last row on a page (created_at plus a tie-break id) and the
listing direction. Callers only ever pass it back unchanged.
"""

import base64
import binascii
import json
from dataclasses import dataclass

CURSOR_VERSION = 1


@dataclass(frozen=True)
class CursorKey:
    created_at: str
    id: str
    direction: str = "desc"


def encode_cursor(created_at: str, row_id: str, direction: str = "desc") -> str:
    payload = {"v": CURSOR_VERSION, "k": [created_at, row_id], "d": direction}
    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_cursor(token: str, direction: str = "desc") -> CursorKey:
    """
    Decode a cursor produced by encode_cursor.

    Raises ValueError for anything that is not a well-formed cursor of the
    current version and the expected direction.
    """
    if not token or not isinstance(token, str):
        raise ValueError("Cursor is empty")
    padded = token + "=" * (-len(token) % 4)
    try:
        payload = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
    except (binascii.Error, UnicodeError, ValueError):
        raise ValueError("Cursor is malformed")

    if not isinstance(payload, dict) or payload.get("v") != CURSOR_VERSION:
        raise ValueError("Cursor version is not supported")
    key = payload.get("k")
    if (
        not isinstance(key, list)
        or len(key) != 2
        or not all(isinstance(part, str) and part for part in key)
    ):
        raise ValueError("Cursor key is malformed")
    if payload.get("d") != direction:
        raise ValueError("Cursor direction does not match this listing")
    return CursorKey(created_at=key[0], id=key[1], direction=direction)
