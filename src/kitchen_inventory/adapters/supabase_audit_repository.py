"""Supabase repository for audit events."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from kitchen_inventory.services.audit import AuditEvent, AuditRepository


@dataclass
class SupabaseAuditRepository(AuditRepository):
    """Writes one ``audit_events`` row per applied inventory change."""

    client: Client

    def create_event(self, event: AuditEvent) -> None:
        """Insert an audit row stamped with the current time."""
        self.client.table("audit_events").insert(
            {
                "user_id": str(event.user_id),
                "household_id": (
                    str(event.household_id) if event.household_id else None
                ),
                "entity_type": event.entity_type,
                "entity_id": event.entity_id,
                "event_type": event.event_type,
                "before_json": event.before,
                "after_json": event.after,
                "occurred_at": datetime.now(tz=UTC).isoformat(),
            }
        ).execute()
