"""Bounded most-recently-used list of project labels."""

from __future__ import annotations

MAX_RECENT_PROJECTS = 5


class RecentProjects:
    def __init__(self, items: list[str] | None = None, limit: int = MAX_RECENT_PROJECTS):
        self._limit = limit
        self._items: list[str] = []
        if items:
            self.replace(items)

    @property
    def items(self) -> list[str]:
        return list(self._items)

    def add(self, label: str | None) -> bool:
        """Move ``label`` to the front. Returns True if the list changed."""
        if not label or not label.strip():
            return False
        label = label.strip()
        updated = [label] + [p for p in self._items if p != label]
        updated = updated[: self._limit]
        if updated == self._items:
            return False
        self._items = updated
        return True

    def remove(self, label: str) -> bool:
        if label not in self._items:
            return False
        self._items = [p for p in self._items if p != label]
        return True

    def replace(self, items: list[str]) -> None:
        deduped: list[str] = []
        for item in items:
            if item not in deduped:
                deduped.append(item)
        self._items = deduped[: self._limit]

    def clear(self) -> None:
        self._items = []

    def __len__(self) -> int:
        return len(self._items)
