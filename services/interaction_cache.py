"""
Interaction State Cache

Per-item boolean interaction state (liked, reposted, following), keyed by
(actor, target, relation). Entries are populated lazily as items become
visible and released when the item's view is torn down; nothing is persisted.
"""

from typing import Callable, Dict, List, NamedTuple, Optional

from data.models import Relation
from utils.logger import get_logger

logger = get_logger(__name__)


class InteractionKey(NamedTuple):
    actor_id: str
    target_id: str
    relation: Relation


StateListener = Callable[[InteractionKey, bool], None]


class InteractionStateCache:
    """Key-value store of interaction edges as seen by this client."""

    def __init__(self):
        self._state: Dict[InteractionKey, bool] = {}
        self._listeners: List[StateListener] = []

    def get(self, actor_id: str, target_id: str, relation: Relation) -> Optional[bool]:
        """Return the cached state, or None when the item has not been seeded."""
        return self._state.get(InteractionKey(actor_id, target_id, relation))

    def is_active(self, actor_id: str, target_id: str, relation: Relation) -> bool:
        return bool(self.get(actor_id, target_id, relation))

    def contains(self, actor_id: str, target_id: str, relation: Relation) -> bool:
        return InteractionKey(actor_id, target_id, relation) in self._state

    def set(self, actor_id: str, target_id: str, relation: Relation, value: bool) -> None:
        key = InteractionKey(actor_id, target_id, relation)
        self._state[key] = value
        self._notify(key, value)

    def seed(self, actor_id: str, target_id: str, relation: Relation, value: bool) -> bool:
        """
        Store ``value`` only if the key is still absent.

        Returns:
            bool: The value now held for the key.
        """
        key = InteractionKey(actor_id, target_id, relation)
        if key in self._state:
            return self._state[key]
        self._state[key] = value
        self._notify(key, value)
        return value

    def release(self, target_id: str) -> int:
        """
        Drop every entry for ``target_id`` (its view was torn down).

        Returns:
            int: Number of entries removed.
        """
        stale = [key for key in self._state if key.target_id == target_id]
        for key in stale:
            del self._state[key]
        return len(stale)

    def clear(self) -> None:
        self._state.clear()

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener for state changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return _unsubscribe

    def _notify(self, key: InteractionKey, value: bool) -> None:
        for listener in list(self._listeners):
            listener(key, value)

    def __len__(self) -> int:
        return len(self._state)
