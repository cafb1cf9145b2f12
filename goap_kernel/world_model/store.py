"""
World State Store — the single canonical copy of warehouse facts.

Updated by: Executor (action effects) + external events
Queried by: Planner, Executor, Orchestrator scenario detection
"""

import logging
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from goap_kernel.models.world import StateChange
from goap_kernel.world_model.conditions import apply_effects, freeze

logger = logging.getLogger(__name__)


class WorldSnapshot(dict):
    """A read-only world state copy. Lists are stored as tuples."""

    def _readonly(self, *args, **kwargs):
        raise TypeError("WorldSnapshot is read-only; use WorldStateStore.apply()")

    __setitem__ = _readonly
    __delitem__ = _readonly
    __ior__ = _readonly
    clear = _readonly
    pop = _readonly
    popitem = _readonly
    setdefault = _readonly
    update = _readonly

    def __copy__(self) -> "WorldSnapshot":
        return self

    def __deepcopy__(self, memo) -> "WorldSnapshot":
        return self

    def __reduce__(self):
        return (WorldSnapshot, (dict(self),))

    def to_dict(self) -> Dict[str, Any]:
        """A mutable, JSON-friendly copy."""
        return {
            k: list(v) if isinstance(v, tuple) else v for k, v in self.items()
        }


def _freeze_state(state: Mapping[str, Any]) -> WorldSnapshot:
    return WorldSnapshot({k: freeze(v) for k, v in state.items()})


class WorldStateStore:
    """
    In-memory world state store. All writes go through apply(), which is
    serialized; snapshots are immutable and read without locking.
    """

    def __init__(self, initial_state: Optional[Mapping[str, Any]] = None, history_limit: int = 500):
        self._lock = threading.Lock()
        self._snapshot = _freeze_state(initial_state or {})
        self._version = 0
        self._history: deque = deque(maxlen=history_limit)
        self._subscribers: List[Callable[[WorldSnapshot], None]] = []

    @property
    def version(self) -> int:
        """Number of writes accepted so far."""
        return self._version

    def snapshot(self) -> WorldSnapshot:
        """Get the current canonical state as an immutable copy."""
        return self._snapshot

    def get(self, key: str, default: Any = None) -> Any:
        return self._snapshot.get(key, default)

    def apply(self, effects: Mapping[str, Any], source: str = "unknown") -> WorldSnapshot:
        """
        Merge effects into the canonical state and broadcast the result.
        Returns the new snapshot.
        """
        with self._lock:
            new_state, changed = apply_effects(self._snapshot, effects)
            self._snapshot = _freeze_state(new_state)
            self._version += 1
            self._history.append(StateChange(
                version=self._version,
                effects={k: _describe(v) for k, v in effects.items()},
                changed_keys=changed,
                applied_at=datetime.now(timezone.utc),
            ))
            snapshot = self._snapshot
            logger.debug(
                "World state v%d applied from %s, changed: %s",
                self._version, source, changed,
            )
            # Broadcast under the lock so subscribers observe writes in order
            for callback in list(self._subscribers):
                try:
                    callback(snapshot)
                except Exception:
                    logger.exception("World state subscriber %r failed", callback)
        return snapshot

    def subscribe(self, callback: Callable[[WorldSnapshot], None]) -> None:
        """Register a callback invoked with every new snapshot."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[WorldSnapshot], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def get_recent_changes(self, limit: int = 10) -> List[StateChange]:
        """Get the most recent accepted writes, oldest first."""
        if limit <= 0:
            return []
        return list(self._history)[-limit:]

    def get_state_snapshot(self) -> dict:
        """Get a serializable snapshot of the current world state."""
        return self._snapshot.to_dict()


def _describe(effect: Any) -> Any:
    if hasattr(effect, "model_dump"):
        return effect.model_dump(mode="json")
    if isinstance(effect, tuple):
        return list(effect)
    return effect
