"""
In-memory query cache shared by every appointment view.

Entries are keyed by tuples whose first element is the namespace, e.g.
("appointments", "week", "upcoming", "2024-07-08", "2024-07-14").
Optimistic removals go through OptimisticRemoval transactions so each
one is either committed or rolled back exactly once.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, List, Optional, Set, Tuple

from groomer_calendar.core.config import settings

logger = logging.getLogger(__name__)

APPOINTMENTS_NAMESPACE = "appointments"

CacheKey = Tuple[Hashable, ...]

def appointment_query_key(
    view_mode: str,
    filter_mode: Optional[str],
    date_from: Optional[str],
    date_to: Optional[str]
) -> CacheKey:
    return (
        APPOINTMENTS_NAMESPACE,
        getattr(view_mode, "value", view_mode),
        getattr(filter_mode, "value", filter_mode),
        date_from,
        date_to,
    )

def item_id(item: Any) -> Optional[str]:
    if isinstance(item, dict):
        value = item.get("id")
    else:
        value = getattr(item, "id", None)
    return None if value is None else str(value)

class TransactionClosedError(RuntimeError):
    """Raised when an optimistic transaction is resolved a second time."""

@dataclass
class CacheEntry:
    data: Any
    updated_at: float = field(default_factory=time.monotonic)
    stale: bool = False

@dataclass
class AffectedView:
    key: CacheKey
    index: int
    item: Any

class OptimisticRemoval:
    """
    Removes one record from every cached list of a namespace and
    remembers where it was, so rollback can put it back in place.
    """

    def __init__(self, cache: "QueryCache", namespace: str, target_id: str):
        self.cache = cache
        self.namespace = namespace
        self.target_id = str(target_id)
        self.affected_views: List[AffectedView] = []
        self.closed = False

    def apply(self) -> None:
        for key in self.cache.keys(self.namespace):
            items = self.cache.get(key)
            if not isinstance(items, list):
                continue
            for index, item in enumerate(items):
                if item_id(item) == self.target_id:
                    self.affected_views.append(AffectedView(key=key, index=index, item=item))
                    self.cache.replace_data(key, items[:index] + items[index + 1:])
                    break
        self.cache._suppress(self.namespace, self.target_id)
        logger.debug(f"Optimistically removed {self.target_id} from {len(self.affected_views)} views")

    def _close(self) -> None:
        if self.closed:
            raise TransactionClosedError(f"Optimistic removal of {self.target_id} already resolved")
        self.closed = True
        self.cache._release(self.namespace, self.target_id)

    def commit(self) -> None:
        self._close()

    def rollback(self) -> None:
        """
        Reinsert the record at its recorded positions. Lists that changed
        shape in the meantime get it at min(index, len(list)); lists that
        already contain it again or were evicted are left alone.
        """
        self._close()
        for view in self.affected_views:
            items = self.cache.get(view.key)
            if not isinstance(items, list):
                continue
            if any(item_id(item) == self.target_id for item in items):
                continue
            restored = list(items)
            restored.insert(min(max(view.index, 0), len(restored)), view.item)
            self.cache.replace_data(view.key, restored)


class QueryCache:
    def __init__(self, stale_seconds: Optional[float] = None):
        self.stale_seconds = settings.CACHE_STALE_SECONDS if stale_seconds is None else stale_seconds
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._suppressed: Dict[str, Dict[str, int]] = {}

    def keys(self, namespace: Optional[str] = None) -> List[CacheKey]:
        """Every held key, optionally limited to one namespace."""
        return [key for key in self._entries if namespace is None or key[0] == namespace]

    def get(self, key: CacheKey) -> Any:
        entry = self._entries.get(key)
        return entry.data if entry else None

    def has(self, key: CacheKey) -> bool:
        return key in self._entries

    def set(self, key: CacheKey, data: Any) -> Any:
        """
        Store fresh (server) data. Records with a pending optimistic
        removal are dropped so a refetch cannot resurrect them.
        """
        suppressed = self.suppressed_ids(key[0])
        if suppressed and isinstance(data, list):
            data = [item for item in data if item_id(item) not in suppressed]
        self._entries[key] = CacheEntry(data=data)
        return data

    def replace_data(self, key: CacheKey, data: Any) -> None:
        """Local edit: swaps the data but keeps freshness metadata."""
        entry = self._entries.get(key)
        if entry is None:
            self._entries[key] = CacheEntry(data=data)
        else:
            entry.data = data

    def is_stale(self, key: CacheKey) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return True
        return entry.stale or time.monotonic() - entry.updated_at > self.stale_seconds

    def invalidate(self, namespace: Optional[str] = None) -> List[CacheKey]:
        keys = self.keys(namespace)
        for key in keys:
            self._entries[key].stale = True
        logger.debug(f"Invalidated {len(keys)} cache entries for {namespace or 'all namespaces'}")
        return keys

    def remove(self, key: CacheKey) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()
        self._suppressed.clear()

    def suppressed_ids(self, namespace: Hashable) -> Set[str]:
        return set(self._suppressed.get(namespace, {}))

    def begin_optimistic_removal(self, namespace: str, target_id: str) -> OptimisticRemoval:
        transaction = OptimisticRemoval(self, namespace, target_id)
        transaction.apply()
        return transaction

    def _suppress(self, namespace: str, target_id: str) -> None:
        counts = self._suppressed.setdefault(namespace, {})
        counts[target_id] = counts.get(target_id, 0) + 1

    def _release(self, namespace: str, target_id: str) -> None:
        counts = self._suppressed.get(namespace, {})
        if counts.get(target_id, 0) <= 1:
            counts.pop(target_id, None)
        else:
            counts[target_id] -= 1
