"""Shared serialization utilities for sinks."""

import base64
from dataclasses import fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from loan_engine.models.document import RenderedDocument


def to_dict(obj: Any) -> dict:
    """Convert object to dictionary."""
    if is_dataclass(obj):
        return dataclass_to_dict(obj)
    elif isinstance(obj, dict):
        return {k: serialize_value(v) for k, v in obj.items()}
    else:
        return {"value": str(obj)}


def dataclass_to_dict(obj: Any) -> dict:
    """Convert a dataclass to a dict of JSON-ready values.

    Walks ``dataclasses.fields()`` instead of ``asdict()`` so nested
    dataclasses (addresses, guarantors) go through ``serialize_value`` too.
    """
    return {f.name: serialize_value(getattr(obj, f.name)) for f in fields(obj)}


def document_metadata(document: RenderedDocument) -> dict:
    """Describe a rendered document without its pages or bytes."""
    return {
        "kind": document.kind.value,
        "loan_id": document.loan_id,
        "customer_id": document.customer_id,
        "installment_number": document.installment_number,
        "filename": document.filename,
        "page_count": document.page_count,
        "size_bytes": document.size_bytes,
    }


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
    elif isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    elif is_dataclass(value):
        return dataclass_to_dict(value)
    elif isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    elif isinstance(value, (list, tuple)):
        return [serialize_value(v) for v in value]
    return value
