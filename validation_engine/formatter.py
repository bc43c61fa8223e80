"""
validation_engine/formatter.py

Display formatting shared by the validation checks.
"""

from __future__ import annotations

from typing import Any


def build_record_link(instance_url: str | None, object_api_name: str, record_id: str | None) -> str | None:
    """Lightning deep link to a record in its origin org."""
    if not instance_url or not record_id:
        return None
    return f"{instance_url.rstrip('/')}/lightning/r/{object_api_name}/{record_id}/view"


def record_label(record: dict[str, Any], name_field: str) -> str:
    record_id = record.get("Id") or "unknown"
    name = record.get(name_field)
    if name:
        return f"'{name}' ({record_id})"
    return str(record_id)


def describe_fields(describe: dict[str, Any] | None) -> dict[str, dict[str, Any]]:
    if not describe:
        return {}
    return {
        field["name"]: field
        for field in describe.get("fields", [])
        if isinstance(field, dict) and field.get("name")
    }


def field_label(describe: dict[str, Any] | None, field_name: str) -> str:
    field = describe_fields(describe).get(field_name)
    if field and field.get("label"):
        return str(field["label"])
    return field_name


def object_label(describe: dict[str, Any] | None, object_api_name: str) -> str:
    if describe and describe.get("label"):
        return str(describe["label"])
    return object_api_name


def picklist_check_name(label: str) -> str:
    return f"Invalid {label} Values"


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def record_key(record_id: Any) -> str:
    """Case-sensitive 15-character form; 15- and 18-character ids of one record compare equal."""
    value = str(record_id or "").strip()
    return value[:15] if len(value) == 18 else value
