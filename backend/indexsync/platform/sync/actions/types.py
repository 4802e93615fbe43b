"""Action dataclasses for the diff engine.

Actions represent the decision taken for one local record. The batch keeps them
grouped by type while ``to_write`` preserves the local record order.
"""

from dataclasses import dataclass, field
from typing import List

from indexsync.platform.transformers.default import OBJECT_ID, ItemRecord


@dataclass
class BaseAction:
    """Base class for all record actions."""

    record: ItemRecord

    @property
    def object_id(self) -> str:
        """Get the record's object id."""
        return str(self.record[OBJECT_ID])


@dataclass
class InsertAction(BaseAction):
    """Record is new (not present remotely)."""

    pass


@dataclass
class UpdateAction(BaseAction):
    """Record exists remotely but at least one match field differs."""

    changed_fields: List[str] = field(default_factory=list)


@dataclass
class KeepAction(BaseAction):
    """Record exists remotely with identical match fields."""

    pass


@dataclass
class ActionBatch:
    """Container for the resolved actions of one collection.

    ``to_write`` holds inserts and updates in local order; ``to_remove`` holds ids
    that exist remotely but were not produced locally.
    """

    inserts: List[InsertAction] = field(default_factory=list)
    updates: List[UpdateAction] = field(default_factory=list)
    keeps: List[KeepAction] = field(default_factory=list)
    to_write: List[ItemRecord] = field(default_factory=list)
    to_remove: List[str] = field(default_factory=list)

    @property
    def has_mutations(self) -> bool:
        """Check if the batch writes or removes anything."""
        return bool(self.to_write or self.to_remove)

    @property
    def total_count(self) -> int:
        """Number of local records the batch was resolved from."""
        return len(self.inserts) + len(self.updates) + len(self.keeps)

    @property
    def local_ids(self) -> List[str]:
        """Object ids of every local record, written or kept."""
        actions = [*self.inserts, *self.updates, *self.keeps]
        return [action.object_id for action in actions]

    def summary(self) -> str:
        """Get a summary string of the batch."""
        return (
            f"{len(self.inserts)} inserts, {len(self.updates)} updates, "
            f"{len(self.keeps)} unchanged, {len(self.to_remove)} to remove"
        )
