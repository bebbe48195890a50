"""Remote property mapping tables.

Hey future me - the remote databases are user-editable, so property names are
DATA, not code. Each collection gets a table of logical field -> remote property
name -> property kind. The Notion client reads and writes entities only through
these tables, and settings.notion.property_overrides can rename any property
without touching the client.
"""

from dataclasses import dataclass, replace
from enum import Enum


class PropertyKind(str, Enum):
    """Shape of a remote property value."""

    TITLE = "title"
    RICH_TEXT = "rich_text"
    SELECT = "select"
    MULTI_SELECT = "multi_select"
    NUMBER = "number"
    DATE = "date"
    FORMULA = "formula"
    ROLLUP = "rollup"
    RELATION = "relation"


@dataclass(frozen=True)
class PropertyMapping:
    """One logical field bound to a remote property."""

    field: str
    name: str
    kind: PropertyKind


@dataclass(frozen=True)
class CollectionSchema:
    """Property table for one remote collection."""

    collection: str
    properties: tuple[PropertyMapping, ...]

    def get(self, field: str) -> PropertyMapping:
        """Look up the mapping for a logical field.

        Raises:
            KeyError: If the field is not part of this collection
        """
        for mapping in self.properties:
            if mapping.field == field:
                return mapping
        raise KeyError(f"{self.collection} has no field {field!r}")

    def name_of(self, field: str) -> str:
        """Remote property name for a logical field."""
        return self.get(field).name

    def with_overrides(self, overrides: dict[str, str] | None) -> "CollectionSchema":
        """Return a copy with remote property names renamed."""
        if not overrides:
            return self
        unknown = set(overrides) - {m.field for m in self.properties}
        if unknown:
            raise KeyError(f"{self.collection} has no fields {sorted(unknown)}")
        return CollectionSchema(
            collection=self.collection,
            properties=tuple(
                replace(m, name=overrides[m.field]) if m.field in overrides else m
                for m in self.properties
            ),
        )


LIBRARY_SCHEMA = CollectionSchema(
    collection="library",
    properties=(
        PropertyMapping("name", "Name", PropertyKind.TITLE),
        PropertyMapping("type", "Type", PropertyKind.SELECT),
        PropertyMapping("artist", "Artist", PropertyKind.RICH_TEXT),
        PropertyMapping("tags", "Tags", PropertyKind.MULTI_SELECT),
        PropertyMapping("last_practiced", "Last Practiced", PropertyKind.FORMULA),
        PropertyMapping("times_practiced", "Times Practiced", PropertyKind.ROLLUP),
    ),
)

SESSION_SCHEMA = CollectionSchema(
    collection="session",
    properties=(
        PropertyMapping("name", "Session", PropertyKind.TITLE),
        PropertyMapping("date", "Date", PropertyKind.DATE),
        PropertyMapping("goal_minutes", "Goal (min)", PropertyKind.NUMBER),
    ),
)

LOG_SCHEMA = CollectionSchema(
    collection="log",
    properties=(
        PropertyMapping("name", "Name", PropertyKind.TITLE),
        PropertyMapping("item_id", "Item", PropertyKind.RELATION),
        PropertyMapping("session_id", "Session", PropertyKind.RELATION),
        PropertyMapping("planned_minutes", "Planned Time (min)", PropertyKind.NUMBER),
        PropertyMapping("actual_minutes", "Actual Time (min)", PropertyKind.NUMBER),
        PropertyMapping("order", "Order", PropertyKind.NUMBER),
        PropertyMapping("notes", "Notes", PropertyKind.RICH_TEXT),
    ),
)
