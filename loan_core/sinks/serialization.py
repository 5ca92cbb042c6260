"""Shared serialization utilities for sinks.

Money stays exact: ``Decimal`` is written as its string form, never as a
float.
"""

from dataclasses import fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any


def to_dict(obj: Any) -> dict:
    """Convert a model, mapping or scalar to a JSON-ready dictionary."""
    if is_dataclass(obj) and not isinstance(obj, type):
        return dataclass_to_dict(obj)
    elif isinstance(obj, dict):
        return {_serialize_key(k): serialize_value(v) for k, v in obj.items()}
    else:
        return {"value": serialize_value(obj)}


def dataclass_to_dict(obj: Any) -> dict:
    """Convert a dataclass field by field, recursing into nested models.

    Properties are not included; only declared fields are written.
    """
    return {f.name: serialize_value(getattr(obj, f.name)) for f in fields(obj)}


def serialize_value(value: Any) -> Any:
    """Serialize a value for JSON output."""
    if isinstance(value, Decimal):
        return str(value)
    elif isinstance(value, Enum):
        return value.value
    elif isinstance(value, datetime):
        return value.isoformat()
    elif isinstance(value, date):
        return value.isoformat()
    elif is_dataclass(value) and not isinstance(value, type):
        return dataclass_to_dict(value)
    elif isinstance(value, dict):
        return {_serialize_key(k): serialize_value(v) for k, v in value.items()}
    elif isinstance(value, (list, tuple)):
        return [serialize_value(v) for v in value]
    return value


def _serialize_key(key: Any) -> Any:
    if isinstance(key, Enum):
        return key.value
    if isinstance(key, (date, datetime)):
        return key.isoformat()
    return key
