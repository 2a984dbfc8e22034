"""Shopping list state and saved-list history."""

from __future__ import annotations

import copy
import threading
from typing import Iterable, Optional

from catalog import CATEGORY_NAMES, ItemCatalog
from checkoff import CheckoffMatcher
from models import CheckoffResult, ShoppingItem

HISTORY_LIMIT = 10


class ShoppingList:
    """Ordered items with case-insensitively unique names.

    All mutations go through this class and return whole batches so that
    observers can apply them atomically.
    """

    def __init__(self, items: Optional[Iterable[ShoppingItem]] = None) -> None:
        self._lock = threading.RLock()
        self._items: list[ShoppingItem] = []
        if items:
            self.merge(items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))

    @property
    def items(self) -> list[ShoppingItem]:
        return list(self._items)

    def names(self) -> list[str]:
        return [item.name for item in self._items]

    def get(self, item_id: str) -> Optional[ShoppingItem]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def is_empty(self) -> bool:
        return not self._items

    def all_complete(self) -> bool:
        return bool(self._items) and all(item.completed for item in self._items)

    def merge(self, batch: Iterable[ShoppingItem]) -> list[ShoppingItem]:
        """Append items whose names are not on the list yet; returns those added."""
        with self._lock:
            seen = {item.name.lower() for item in self._items}
            added: list[ShoppingItem] = []
            for item in batch:
                key = item.name.lower()
                if key in seen:
                    continue
                seen.add(key)
                self._items.append(item)
                added.append(item)
            return added

    def toggle(self, item_id: str) -> tuple[Optional[ShoppingItem], bool]:
        """Flip one item's completion.

        Returns the item and whether this toggle completed the whole list.
        """
        with self._lock:
            item = self.get(item_id)
            if item is None:
                return None, False
            item.completed = not item.completed
            return item, item.completed and self.all_complete()

    def check_off(self, matcher: CheckoffMatcher, transcript: str) -> CheckoffResult:
        with self._lock:
            return matcher.apply(transcript, self._items)

    def remove(self, item_id: str) -> Optional[ShoppingItem]:
        with self._lock:
            item = self.get(item_id)
            if item is not None:
                self._items.remove(item)
            return item

    def clear(self) -> None:
        with self._lock:
            self._items = []

    def replace(self, items: Iterable[ShoppingItem]) -> None:
        with self._lock:
            self._items = []
            self.merge(copy.deepcopy(list(items)))

    def snapshot(self) -> list[ShoppingItem]:
        """Detached copy suitable for handing to a persistence collaborator."""
        with self._lock:
            return copy.deepcopy(self._items)

    def by_category(self, catalog: ItemCatalog) -> dict[str, list[ShoppingItem]]:
        grouped: dict[str, list[ShoppingItem]] = {}
        for item in self._items:
            category = catalog.category_of(item.name)
            grouped.setdefault(CATEGORY_NAMES.get(category, category), []).append(item)
        return grouped


class ListHistory:
    """Most recent saved lists first, capped at ``limit`` entries."""

    def __init__(self, limit: int = HISTORY_LIMIT) -> None:
        self._limit = limit
        self._lists: list[list[ShoppingItem]] = []

    def __len__(self) -> int:
        return len(self._lists)

    def save(self, snapshot: list[ShoppingItem]) -> bool:
        if not snapshot:
            return False
        self._lists = [copy.deepcopy(snapshot)] + self._lists[: self._limit - 1]
        return True

    def get(self, index: int) -> Optional[list[ShoppingItem]]:
        if 0 <= index < len(self._lists):
            return copy.deepcopy(self._lists[index])
        return None

    def clear(self) -> None:
        self._lists = []
