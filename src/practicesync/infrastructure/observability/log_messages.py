"""Structured log message templates for consistent, human-readable logging.

Hey future me - instead of "Error: HTTP 502" you get:

    ❌ Library Sync Failed
    ├─ Source: Notion
    ├─ Reason: HTTP 502: Bad Gateway
    └─ 💡 Cached library kept on screen, retry with refresh

Layout: icon first, then what happened, then context fields, then an optional hint.

Usage:
    from practicesync.infrastructure.observability.log_messages import LogMessages

    logger.warning(LogMessages.sync_failed(entity="Library", source="Notion", error=str(e)))
"""

from dataclasses import dataclass
from typing import Any


@dataclass
class LogTemplate:
    """A reusable log message template with placeholders."""

    icon: str
    title: str
    fields: dict[str, str]
    hint: str | None = None

    def format(self, **kwargs: Any) -> str:
        """Format the template with provided values.

        Args:
            **kwargs: Values to fill into template placeholders

        Returns:
            Multi-line message with icon, title, tree fields and optional hint
        """
        lines = [f"{self.icon} {self.title}"]

        field_items = list(self.fields.items())
        for i, (key, value_template) in enumerate(field_items):
            prefix = "└─" if i == len(field_items) - 1 and not self.hint else "├─"
            try:
                value = value_template.format(**kwargs)
            except (KeyError, IndexError) as e:
                value = f"<missing: {e}>"
            lines.append(f"{prefix} {key}: {value}")

        if self.hint:
            try:
                hint_text = self.hint.format(**kwargs)
            except (KeyError, IndexError) as e:
                hint_text = f"<missing: {e}>"
            lines.append(f"└─ 💡 {hint_text}")

        return "\n".join(lines)


class LogMessages:
    """Collection of standardized log message templates.

    Categories:
    - Data sync (pull/push against the remote workspace)
    - Local cache
    - Credentials
    """

    # === Data Sync ===

    @staticmethod
    def sync_started(entity: str, source: str, count: int | None = None) -> str:
        """Format a sync start message.

        Args:
            entity: What is being synced (e.g., "Library", "Session logs")
            source: Where from (e.g., "Notion", "cache")
            count: Number of items (if known)
        """
        fields = {"Source": source}
        if count is not None:
            fields["Items"] = str(count)

        return LogTemplate(icon="🔄", title=f"Syncing {entity}", fields=fields).format()

    @staticmethod
    def sync_completed(
        entity: str,
        added: int = 0,
        updated: int = 0,
        removed: int = 0,
        errors: int = 0,
    ) -> str:
        """Format a sync completion message."""
        icon = "✅" if errors == 0 else "⚠️"
        fields = {
            "Added": str(added),
            "Updated": str(updated),
            "Removed": str(removed),
        }
        if errors > 0:
            fields["Errors"] = str(errors)

        return LogTemplate(icon=icon, title=f"{entity} Sync Complete", fields=fields).format()

    @staticmethod
    def sync_failed(entity: str, source: str, error: str, hint: str | None = None) -> str:
        """Format a sync failure message."""
        default_hint = f"Check {source} API key, network and API status"

        return LogTemplate(
            icon="❌",
            title=f"{entity} Sync Failed",
            fields={"Source": source, "Reason": error},
            hint=hint or default_hint,
        ).format()

    @staticmethod
    def save_aborted(session_id: str, stage: str, processed: int, error: str) -> str:
        """Format a partially applied save.

        Args:
            session_id: Session being saved
            stage: "delete" or "upsert"
            processed: How many operations completed before the failure
            error: Error description
        """
        return LogTemplate(
            icon="❌",
            title="Session Save Aborted",
            fields={
                "Session": session_id,
                "Stage": stage,
                "Completed": str(processed),
                "Reason": error,
            },
            hint="Completed writes are kept; unsaved items stay dirty and are retried on the next save",
        ).format()

    # === Local Cache ===

    @staticmethod
    def cache_operation_failed(operation: str, error: str) -> str:
        """Format a fail-soft cache error."""
        return LogTemplate(
            icon="⚠️",
            title="Cache Operation Failed",
            fields={"Operation": operation, "Reason": error},
            hint="Continuing without cache; data will be refetched from the remote",
        ).format()

    # === Credentials ===

    @staticmethod
    def credential_missing(service: str, feature: str) -> str:
        """Format a missing API key message."""
        return LogTemplate(
            icon="🔑",
            title=f"{service} API Key Required",
            fields={"Feature": feature},
            hint="Set the key via set_api_key() or PRACTICESYNC_NOTION__API_KEY",
        ).format()
