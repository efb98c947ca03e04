from typing import Iterable, List, Optional, Set

from tripcontext.models.place_models import PlaceRecord


class BoundedAccumulator:
    """Collects place records across several queries.

    Records are deduplicated by id and the total never exceeds ``cap``.
    ``add`` returns only the rows that were actually taken, so callers can
    log per-query contributions.
    """

    def __init__(self, cap: int):
        self.cap = max(0, int(cap))
        self._items: List[PlaceRecord] = []
        self._seen_ids: Set[str] = set()

    @property
    def remaining(self) -> int:
        return self.cap - len(self._items)

    @property
    def is_full(self) -> bool:
        return self.remaining <= 0

    def add(self, rows: Iterable[PlaceRecord], limit: Optional[int] = None) -> List[PlaceRecord]:
        """Add unseen rows until the cap (or ``limit`` rows for this call) is reached."""
        budget = self.remaining if limit is None else min(limit, self.remaining)
        added: List[PlaceRecord] = []
        for row in rows or []:
            if len(added) >= budget:
                break
            if row.id in self._seen_ids:
                continue
            self._seen_ids.add(row.id)
            self._items.append(row)
            added.append(row)
        return added

    def items(self) -> List[PlaceRecord]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)
