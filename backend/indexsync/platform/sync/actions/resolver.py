"""Diff engine: resolves local records against a remote snapshot."""

from typing import Any, Dict, List, Mapping, Optional, Sequence

from indexsync.platform.sync.actions.types import (
    ActionBatch,
    InsertAction,
    KeepAction,
    UpdateAction,
)
from indexsync.platform.sync.exceptions import ConfigurationError
from indexsync.platform.transformers.default import OBJECT_ID, ItemRecord

_MISSING = object()


class DiffEngine:
    """Decides which records must be written and which remote ids must go.

    Without a snapshot (full rebuild) every record is written and nothing is
    removed: stale records disappear with the shadow index swap instead.
    """

    def resolve(
        self,
        records: Sequence[ItemRecord],
        snapshot: Optional[Mapping[str, Mapping[str, Any]]],
        match_fields: Sequence[str],
    ) -> ActionBatch:
        """Resolve ``records`` into an action batch.

        Args:
            records: Local records in pipeline order
            snapshot: Remote object id -> match field values, or None for a full rebuild
            match_fields: Fields compared to decide whether a record changed

        Raises:
            ConfigurationError: If ``match_fields`` is empty
        """
        if not match_fields:
            raise ConfigurationError("matchFields required array of strings")

        batch = ActionBatch()
        if snapshot is None:
            batch.inserts = [InsertAction(record=record) for record in records]
            batch.to_write = list(records)
            return batch

        # Working copy: ids still in here after the loop are not produced locally
        unaccounted: Dict[str, Mapping[str, Any]] = dict(snapshot)

        for record in records:
            object_id = str(record[OBJECT_ID])
            remote = unaccounted.pop(object_id, None)
            if remote is None:
                if object_id in snapshot:
                    # Same id produced twice locally; already decided on first sight
                    remote = snapshot[object_id]
                else:
                    batch.inserts.append(InsertAction(record=record))
                    batch.to_write.append(record)
                    continue

            changed = self.changed_fields(record, remote, match_fields)
            if changed:
                batch.updates.append(UpdateAction(record=record, changed_fields=changed))
                batch.to_write.append(record)
            else:
                batch.keeps.append(KeepAction(record=record))

        batch.to_remove = list(unaccounted)
        return batch

    @staticmethod
    def changed_fields(
        local: Mapping[str, Any], remote: Mapping[str, Any], match_fields: Sequence[str]
    ) -> List[str]:
        """Match fields whose values differ. A field missing on either side differs."""
        changed = []
        for match_field in match_fields:
            local_value = local.get(match_field, _MISSING)
            remote_value = remote.get(match_field, _MISSING)
            if local_value is _MISSING or remote_value is _MISSING or local_value != remote_value:
                changed.append(match_field)
        return changed


diff_engine = DiffEngine()
