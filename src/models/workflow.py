"""Reassignment (alt) request model."""

from dataclasses import dataclass
from enum import Enum


class AltRequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass
class AltRequest:
    """A staff request to move one snapshot's credit to someone else."""

    id: int | None
    livestream_id: int
    snapshot_id: str
    created_by: int
    alt_note: str
    status: AltRequestStatus = AltRequestStatus.PENDING
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == AltRequestStatus.PENDING

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "livestream_id": self.livestream_id,
            "snapshot_id": self.snapshot_id,
            "created_by": self.created_by,
            "alt_note": self.alt_note,
            "status": self.status.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
