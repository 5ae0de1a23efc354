"""
Content Store
Append-only question pool port and its in-memory implementation
"""
from abc import ABC, abstractmethod
from collections import Counter
from threading import Lock
from typing import Dict, List, Optional
import logging

from core import ContentItem, CoverageKey


logger = logging.getLogger(__name__)


class ContentStore(ABC):
    """
    Question pool port

    Items are only ever appended; counting is grouped by the four
    denormalized CoverageKey fields of ready items.
    """

    @abstractmethod
    def append(self, item: ContentItem) -> str:
        """
        Append one item

        Args:
            item: validated content item with its id already assigned

        Returns:
            The stored item id

        Raises:
            PersistenceError: the store rejected the write
        """
        pass

    @abstractmethod
    def count_by_key(self) -> Dict[CoverageKey, int]:
        """Ready-item counts grouped by CoverageKey"""
        pass

    @abstractmethod
    def list_items(self, key: Optional[CoverageKey] = None) -> List[ContentItem]:
        """Stored items, optionally limited to one bucket"""
        pass

    def count(self, key: CoverageKey) -> int:
        return self.count_by_key().get(key, 0)

    def close(self) -> None:
        """Release resources (no-op by default)"""
        return None


class InMemoryContentStore(ContentStore):
    """
    In-memory question pool
    For tests and dry runs
    """

    def __init__(self, items: Optional[List[ContentItem]] = None):
        self._items: List[ContentItem] = list(items or [])
        self._lock = Lock()

    def append(self, item: ContentItem) -> str:
        with self._lock:
            self._items.append(item)
        return item.id

    def count_by_key(self) -> Dict[CoverageKey, int]:
        with self._lock:
            counts = Counter(item.key for item in self._items if item.status == "ready")
        return dict(counts)

    def list_items(self, key: Optional[CoverageKey] = None) -> List[ContentItem]:
        with self._lock:
            items = list(self._items)
        if key is None:
            return items
        return [item for item in items if item.key == key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
