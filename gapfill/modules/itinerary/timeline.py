"""
modules/itinerary/timeline.py
-------------------------------
ItineraryTimeline: the in-memory, chronologically sorted item set of one
planning session.

Contract:
  - insert()  is the guarded path: duplicates and overlaps are rejected and
              the timeline is left untouched.
  - remove()  refuses locked (calendar-imported) items.
  - import_batch() trusts external calendar data: items are stored locked,
              deduplicated by id (existing wins), and NOT overlap-checked.
  - Every mutation returns a result object; nothing here raises on data.

Gaps are never stored: gaps() recomputes them from the current items.
"""

from __future__ import annotations
import logging
from datetime import date
from typing import Iterable, Iterator, Optional

from gapfill.modules.itinerary.overlap_guard import check_overlaps
from gapfill.modules.planning.gap_detector import detect_gaps_with
from gapfill.schemas.gaps import TimeGap
from gapfill.schemas.itinerary import (
    ImportResult, ItemSource, MutationResult, RejectionReason, TimelineItem,
)
from gapfill.schemas.options import PlannerOptions


logger = logging.getLogger(__name__)


class ItineraryTimeline:

    def __init__(self, items: Optional[Iterable[TimelineItem]] = None):
        self._items: list[TimelineItem] = []
        for item in items or ():
            self.insert(item)

    # ── Read access ───────────────────────────────────────────────────────────

    @property
    def items(self) -> tuple[TimelineItem, ...]:
        """Snapshot in start order."""
        return tuple(self._items)

    def get(self, item_id: str) -> Optional[TimelineItem]:
        return next((i for i in self._items if i.id == item_id), None)

    def items_on(self, day: date) -> list[TimelineItem]:
        return [i for i in self._items if i.start_time.date() == day]

    def days(self) -> list[date]:
        """Distinct calendar dates with at least one item, ascending."""
        return sorted({i.start_time.date() for i in self._items})

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[TimelineItem]:
        return iter(tuple(self._items))

    def __contains__(self, item_id: object) -> bool:
        if isinstance(item_id, TimelineItem):
            item_id = item_id.id
        return any(i.id == item_id for i in self._items)

    # ── Mutations ─────────────────────────────────────────────────────────────

    def insert(self, item: TimelineItem) -> MutationResult:
        """Guarded insertion. Rejections leave the timeline unchanged."""
        if item.id in self:
            return self._reject(
                RejectionReason.DUPLICATE, f"Item {item.id} is already in the itinerary", item,
            )
        if item.recommendation_id is not None:
            twin = next(
                (i for i in self._items
                 if i.recommendation_id == item.recommendation_id and i.source == item.source),
                None,
            )
            if twin is not None:
                return self._reject(
                    RejectionReason.DUPLICATE,
                    f"Activity {item.recommendation_id} is already scheduled as {twin.id}",
                    item,
                )

        check = check_overlaps(self._items, item)
        if check.has_overlap:
            return self._reject(
                RejectionReason.OVERLAP, check.message or "Overlapping item", item,
                conflicts=check.conflicting_items,
            )

        self._items.append(item)
        self._sort()
        logger.info(
            "Inserted %s '%s' [%s, %s)",
            item.id, item.title, item.start_time.isoformat(), item.end_time.isoformat(),
        )
        return MutationResult.ok(item)

    def remove(self, item_id: str) -> MutationResult:
        item = self.get(item_id)
        if item is None:
            return self._reject(RejectionReason.NOT_FOUND, f"Item {item_id} not found in itinerary")
        if item.is_locked:
            return self._reject(
                RejectionReason.IMMUTABLE,
                f"Item {item_id} is locked (imported from calendar) and cannot be removed",
                item,
            )
        self._items = [i for i in self._items if i.id != item_id]
        logger.info("Removed %s '%s'", item.id, item.title)
        return MutationResult.ok(item)

    def import_batch(self, items: Iterable[TimelineItem]) -> ImportResult:
        """
        Merge externally sourced calendar items.

        Every incoming item is stored as a locked google_calendar copy. Ids
        already present (or repeated within the batch) are skipped. Overlaps
        are kept as-is: external calendars may legitimately double-book.
        """
        result = ImportResult()
        for incoming in items:
            if incoming.id in self:
                result.skipped_ids.append(incoming.id)
                continue
            locked = incoming.model_copy(
                update={"is_locked": True, "source": ItemSource.GOOGLE_CALENDAR},
            )
            self._items.append(locked)
            result.imported.append(locked)
        self._sort()
        logger.info(
            "Imported %d calendar item(s), skipped %d duplicate id(s)",
            result.imported_count, len(result.skipped_ids),
        )
        return result

    def clear(self) -> None:
        """Empties the timeline, locked items included."""
        self._items = []
        logger.info("Timeline cleared")

    # ── Derived ───────────────────────────────────────────────────────────────

    def gaps(self, day: date, options: Optional[PlannerOptions] = None) -> list[TimeGap]:
        return detect_gaps_with(self._items, day, options or PlannerOptions.from_config())

    # ── Internal ──────────────────────────────────────────────────────────────

    def _sort(self) -> None:
        self._items.sort(key=lambda i: (i.start_time, i.end_time))

    @staticmethod
    def _reject(
        reason: RejectionReason,
        message: str,
        item: Optional[TimelineItem] = None,
        conflicts: Optional[list[TimelineItem]] = None,
    ) -> MutationResult:
        logger.info("Rejected (%s): %s", reason.value, message)
        return MutationResult.rejected(reason, message, item=item, conflicts=conflicts)
