"""JSON serialization utilities."""

from __future__ import annotations

import base64
import dataclasses
import datetime
import decimal
import enum
import json


def json_default(obj: object) -> object:
    """JSON serializer for objects not serializable by default json code."""
    if isinstance(obj, (datetime.date, datetime.datetime)):
        return obj.isoformat()
    if isinstance(obj, enum.Enum):
        return obj.value
    if isinstance(obj, decimal.Decimal):
        # Preserve numeric type: convert to int if no decimal part, else float.
        # For very large values that would lose precision as float, use string.
        if obj == obj.to_integral_value():
            return int(obj)
        f = float(obj)
        if decimal.Decimal(str(f)) != obj:
            return str(obj)
        return f
    if isinstance(obj, bytes):
        try:
            return obj.decode("utf-8")
        except UnicodeDecodeError:
            return base64.b64encode(obj).decode("utf-8")
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    if isinstance(obj, BaseException):
        return {"type": type(obj).__name__, "message": str(obj)}

    return str(obj)


def dumps(value: object) -> str:
    return json.dumps(value, ensure_ascii=True, default=json_default)


def loads(value: str | None) -> object:
    if value is None:
        return None
    return json.loads(value)
