"""Read and write Notion property values.

Hey future me - a Notion page's "properties" dict maps the property NAME to a
typed blob, e.g. {"Name": {"type": "title", "title": [{"plain_text": "Blackbird"}]}}.
Everything here is tolerant: a missing or oddly shaped property yields the
empty value for its kind, never an exception. Page-level problems (no id, no
properties dict) are the client's business.
"""

from datetime import date
from typing import Any

from practicesync.config.schema import PropertyKind, PropertyMapping


def parse_iso_date(value: str | None) -> date | None:
    """Parse "2024-01-05" or "2024-01-05T10:00:00.000+00:00" to a date."""
    if not value or not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _plain_text(prop: dict[str, Any], key: str) -> str:
    parts = prop.get(key)
    if not isinstance(parts, list):
        return ""
    return "".join(
        str(part.get("plain_text", "")) for part in parts if isinstance(part, dict)
    )


def get_title(prop: dict[str, Any] | None) -> str:
    return _plain_text(prop, "title") if isinstance(prop, dict) else ""


def get_rich_text(prop: dict[str, Any] | None) -> str:
    return _plain_text(prop, "rich_text") if isinstance(prop, dict) else ""


def get_select(prop: dict[str, Any] | None) -> str | None:
    if not isinstance(prop, dict):
        return None
    select = prop.get("select")
    if isinstance(select, dict) and isinstance(select.get("name"), str):
        return select["name"]
    return None


def get_multi_select(prop: dict[str, Any] | None) -> list[str]:
    if not isinstance(prop, dict) or not isinstance(prop.get("multi_select"), list):
        return []
    return [
        option["name"]
        for option in prop["multi_select"]
        if isinstance(option, dict) and isinstance(option.get("name"), str)
    ]


def get_number(prop: dict[str, Any] | None) -> float | None:
    if not isinstance(prop, dict):
        return None
    value = prop.get("number")
    # bool is an int subclass, never a number here
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return float(value)


def get_date(prop: dict[str, Any] | None) -> str | None:
    if not isinstance(prop, dict):
        return None
    value = prop.get("date")
    if isinstance(value, dict) and isinstance(value.get("start"), str):
        return value["start"]
    return None


def get_formula(prop: dict[str, Any] | None) -> Any:
    """Formula result: string, number, boolean, or date start string."""
    if not isinstance(prop, dict) or not isinstance(prop.get("formula"), dict):
        return None
    formula = prop["formula"]
    kind = formula.get("type")
    if kind == "date":
        return get_date(formula)
    if kind in ("string", "number", "boolean"):
        return formula.get(kind)
    # untyped payloads: take whatever is there
    if isinstance(formula.get("string"), str):
        return formula["string"]
    return get_date(formula)


def get_rollup(prop: dict[str, Any] | None) -> int | None:
    """Rollup as an int: number rollups directly, array rollups by length."""
    if not isinstance(prop, dict) or not isinstance(prop.get("rollup"), dict):
        return None
    rollup = prop["rollup"]
    number = rollup.get("number")
    if isinstance(number, int | float) and not isinstance(number, bool):
        return int(number)
    if isinstance(rollup.get("array"), list):
        return len(rollup["array"])
    return None


def get_relation(prop: dict[str, Any] | None) -> list[str]:
    if not isinstance(prop, dict) or not isinstance(prop.get("relation"), list):
        return []
    return [
        ref["id"]
        for ref in prop["relation"]
        if isinstance(ref, dict) and isinstance(ref.get("id"), str)
    ]


_EXTRACTORS = {
    PropertyKind.TITLE: get_title,
    PropertyKind.RICH_TEXT: get_rich_text,
    PropertyKind.SELECT: get_select,
    PropertyKind.MULTI_SELECT: get_multi_select,
    PropertyKind.NUMBER: get_number,
    PropertyKind.DATE: get_date,
    PropertyKind.FORMULA: get_formula,
    PropertyKind.ROLLUP: get_rollup,
    PropertyKind.RELATION: get_relation,
}


def extract(properties: dict[str, Any], mapping: PropertyMapping) -> Any:
    """Read the value of one mapped property from a page's properties dict."""
    return _EXTRACTORS[mapping.kind](properties.get(mapping.name))


def build(mapping: PropertyMapping, value: Any) -> dict[str, Any]:
    """Build the write payload for one mapped property.

    Raises:
        ValueError: For read-only kinds (formula, rollup)
    """
    kind = mapping.kind
    if kind is PropertyKind.TITLE:
        return {"title": [{"text": {"content": str(value)}}]}
    if kind is PropertyKind.RICH_TEXT:
        if not value:
            return {"rich_text": []}
        return {"rich_text": [{"text": {"content": str(value)}}]}
    if kind is PropertyKind.SELECT:
        return {"select": {"name": str(value)} if value else None}
    if kind is PropertyKind.MULTI_SELECT:
        return {"multi_select": [{"name": str(v)} for v in value or []]}
    if kind is PropertyKind.NUMBER:
        return {"number": value}
    if kind is PropertyKind.DATE:
        start = value.isoformat() if isinstance(value, date) else str(value)
        return {"date": {"start": start}}
    if kind is PropertyKind.RELATION:
        ids = value if isinstance(value, list) else [value]
        return {"relation": [{"id": ref} for ref in ids if ref]}
    raise ValueError(f"Property {mapping.name!r} of kind {kind.value} is read-only")
