"""Opaque pagination cursors: urlsafe base64 of {"offset": n}."""

import base64
import binascii
import json


class InvalidCursorError(ValueError):
    pass


def encode_cursor(offset: int) -> str:
    raw = json.dumps({"offset": int(offset)}, separators=(",", ":"))
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str = None) -> int:
    """Return the offset encoded in `cursor`; empty cursor means offset 0."""
    if not cursor:
        return 0
    try:
        info = json.loads(base64.urlsafe_b64decode(cursor.encode("ascii")))
        offset = int(info["offset"])
    except (binascii.Error, UnicodeError, ValueError, TypeError, KeyError) as e:
        raise InvalidCursorError(f"Invalid cursor: {cursor!r}") from e
    if offset < 0:
        raise InvalidCursorError(f"Invalid cursor offset: {offset}")
    return offset
