"""Ordered stack of committed labels."""

from __future__ import annotations

from typing import Callable, Iterator, List, Optional

from .label import Label


class LabelCollection:
    """
    Committed labels, most recently added first.

    Iteration runs front to back, which is also the hit-test priority:
    newer labels win over older ones. Membership is by identity.
    """

    def __init__(self) -> None:
        self._labels: List[Label] = []

    def add(self, label: Label) -> bool:
        """
        Insert a label at the front.

        Returns:
            False if the label was already present
        """
        if label in self:
            return False
        self._labels.insert(0, label)
        return True

    def remove(self, label: Optional[Label]) -> bool:
        """Remove a label by identity; True if it was present."""
        for index, existing in enumerate(self._labels):
            if existing is label:
                del self._labels[index]
                return True
        return False

    def clear(self) -> None:
        self._labels.clear()

    def most_recent(self) -> Optional[Label]:
        """Front label, or None when empty."""
        return self._labels[0] if self._labels else None

    def first_match(self, predicate: Callable[[Label], bool]) -> Optional[Label]:
        """Return the first label, front to back, for which ``predicate`` holds."""
        for label in self._labels:
            if predicate(label):
                return label
        return None

    def labels(self) -> List[Label]:
        """Copy of the labels in front-to-back order."""
        return list(self._labels)

    def __contains__(self, label: object) -> bool:
        return any(existing is label for existing in self._labels)

    def __iter__(self) -> Iterator[Label]:
        return iter(list(self._labels))

    def __len__(self) -> int:
        return len(self._labels)

    def __bool__(self) -> bool:
        return bool(self._labels)
