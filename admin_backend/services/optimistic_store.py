"""Per-record optimistic state with targeted rollback.

A proposed transition is applied locally and tagged with the record's
previous state. If the remote side errors or reports a different state,
only that record is reverted.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional

logger = logging.getLogger("admin_console.optimistic")

_MISSING = object()


class OptimisticStore:
    def __init__(self, initial: Optional[Dict[Hashable, Any]] = None):
        self._states: Dict[Hashable, Any] = dict(initial or {})
        self._previous: Dict[Hashable, Any] = {}

    def get(self, record_id: Hashable, default: Any = None) -> Any:
        return self._states.get(record_id, default)

    def snapshot(self) -> Dict[Hashable, Any]:
        return dict(self._states)

    def is_pending(self, record_id: Hashable) -> bool:
        return record_id in self._previous

    def propose(self, record_id: Hashable, state: Any) -> None:
        """Apply ``state`` locally, remembering what it replaced."""
        if record_id in self._previous:
            raise ValueError(f"Record {record_id!r} already has a pending change")
        self._previous[record_id] = self._states.get(record_id, _MISSING)
        self._states[record_id] = state

    def commit(self, record_id: Hashable, state: Any = _MISSING) -> None:
        """Accept the pending change, optionally with the state the remote reported."""
        self._previous.pop(record_id, None)
        if state is not _MISSING:
            self._states[record_id] = state

    def rollback(self, record_id: Hashable) -> None:
        """Restore the state captured by ``propose`` for this record only."""
        if record_id not in self._previous:
            return
        previous = self._previous.pop(record_id)
        if previous is _MISSING:
            self._states.pop(record_id, None)
        else:
            self._states[record_id] = previous

    async def apply(
        self,
        record_id: Hashable,
        state: Any,
        remote: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Propose ``state``, confirm with ``remote()``; revert this record on error or disagreement.

        ``remote`` returns the state the server settled on. Errors are
        re-raised after the rollback.
        """
        self.propose(record_id, state)
        try:
            confirmed = await remote()
        except Exception:
            self.rollback(record_id)
            raise
        if confirmed is not None and confirmed != state:
            logger.info("Remote settled %r on %r, reverting local %r", record_id, confirmed, state)
            self.rollback(record_id)
            return self.get(record_id)
        self.commit(record_id)
        return state
