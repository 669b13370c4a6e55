"""Audit trail of applied inventory changes."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from kitchen_inventory.domain.packages import OwnerScope, PackageRecord
from kitchen_inventory.domain.transfers import PackageState, TransferDiff


@dataclass(frozen=True)
class AuditEvent:
    """One applied change: the touched packages as read, and the diff."""

    user_id: UUID
    household_id: UUID | None
    event_type: str
    entity_id: str
    before: dict[str, object] | None
    after: dict[str, object]
    entity_type: str = "inventory"


class AuditRepository(Protocol):
    """Persistence interface for audit events."""

    def create_event(self, event: AuditEvent) -> None:
        """Store an audit event."""


@dataclass
class AuditService:
    """Records every diff the inventory service applies."""

    repository: AuditRepository

    def record_diff(
        self,
        scope: OwnerScope,
        packages: list[PackageRecord],
        diff: TransferDiff,
        *,
        event_type: str,
        entity_id: str,
    ) -> AuditEvent:
        """Persist an applied diff with the prior state of what it touched."""
        touched = diff.touched_ids
        before = {
            str(package.id): PackageState.of(package).to_dict()
            for package in packages
            if package.id in touched
        }
        event = AuditEvent(
            user_id=scope.user_id,
            household_id=scope.household_id,
            event_type=event_type,
            entity_id=entity_id,
            before=before or None,
            after=diff.to_dict(),
        )
        self.repository.create_event(event)
        return event
