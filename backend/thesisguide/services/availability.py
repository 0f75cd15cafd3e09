from __future__ import annotations

from datetime import date

from thesisguide.core.config import Settings, get_settings
from thesisguide.models.user import UserRole
from thesisguide.schemas.availability import AvailableSlot, FreeRange
from thesisguide.schemas.scheduling import AvailabilityWindowRecord, CommitmentKind, CommittedInterval
from thesisguide.services.conflict_service import ConflictService
from thesisguide.services.storage import ACTIVE_SESSION_STATUSES, SchedulingStore
from thesisguide.services.time_utils import day_of_week, minutes_to_hhmm, overlaps, to_minutes


def window_applies_on(window: AvailabilityWindowRecord, on_date: date) -> bool:
    if not window.is_active:
        return False
    if window.is_recurring and window.day_of_week == day_of_week(on_date):
        return True
    return window.specific_date == on_date


def _subtract(segments: list[tuple[int, int]], cut_start: int, cut_end: int) -> list[tuple[int, int]]:
    remaining: list[tuple[int, int]] = []
    for start, end in segments:
        if cut_end <= start or cut_start >= end:
            remaining.append((start, end))
            continue
        if start < cut_start:
            remaining.append((start, cut_start))
        if cut_end < end:
            remaining.append((cut_end, end))
    return remaining


class AvailabilityResolver:
    """Derives an advisor's bookable windows for a date from declared windows and commitments."""

    def __init__(self, store: SchedulingStore, settings: Settings | None = None):
        self.store = store
        self.settings = settings or get_settings()

    def open_windows(self, advisor_id: str, on_date: date) -> list[AvailabilityWindowRecord]:
        windows = [
            window
            for window in self.store.get_availability_windows(advisor_id, on_date)
            if window_applies_on(window, on_date)
        ]
        return sorted(windows, key=lambda item: (to_minutes(item.start_time), to_minutes(item.end_time)))

    def committed_intervals(
        self,
        advisor_id: str,
        on_date: date,
        student_id: str | None = None,
    ) -> list[CommittedInterval]:
        parties = [(advisor_id, UserRole.advisor)]
        if student_id is not None:
            parties.append((student_id, UserRole.student))
        intervals: list[CommittedInterval] = []
        for actor_id, role in parties:
            for interval in self.store.get_committed_intervals(actor_id, role, on_date):
                if interval.kind == CommitmentKind.guidance and interval.session_status not in ACTIVE_SESSION_STATUSES:
                    continue
                intervals.append(interval)
        return intervals

    def resolve(self, advisor_id: str, on_date: date, student_id: str | None = None) -> list[AvailableSlot]:
        """Report each open window whole; any overlap marks the entire window unavailable."""
        windows = self.open_windows(advisor_id, on_date)
        if not windows:
            return []
        committed = self.committed_intervals(advisor_id, on_date, student_id=student_id)
        slots: list[AvailableSlot] = []
        for window in windows:
            blocked = any(
                overlaps(window.start_time, window.end_time, item.start_time, item.end_time) for item in committed
            )
            slots.append(
                AvailableSlot(
                    start_time=window.start_time,
                    end_time=window.end_time,
                    available=not blocked,
                    window_id=window.id,
                )
            )
        return slots

    def free_ranges(self, advisor_id: str, on_date: date, student_id: str | None = None) -> list[FreeRange]:
        """Open windows minus committed intervals, keeping pieces long enough for a session."""
        windows = self.open_windows(advisor_id, on_date)
        if not windows:
            return []
        committed = [
            (to_minutes(item.start_time), to_minutes(item.end_time))
            for item in self.committed_intervals(advisor_id, on_date, student_id=student_id)
        ]
        minimum = self.settings.min_session_minutes
        ranges: list[FreeRange] = []
        for window in windows:
            segments = [(to_minutes(window.start_time), to_minutes(window.end_time))]
            for cut_start, cut_end in committed:
                segments = _subtract(segments, cut_start, cut_end)
            for start, end in segments:
                if end - start < minimum:
                    continue
                ranges.append(
                    FreeRange(
                        start_time=minutes_to_hhmm(start),
                        end_time=minutes_to_hhmm(end),
                        duration_minutes=end - start,
                        window_id=window.id,
                    )
                )
        ranges.sort(key=lambda item: item.start_time)
        return ranges

    def covers_open_window(self, advisor_id: str, on_date: date, start_time: str, end_time: str) -> bool:
        start, end = to_minutes(start_time), to_minutes(end_time)
        return any(
            to_minutes(window.start_time) <= start and end <= to_minutes(window.end_time)
            for window in self.open_windows(advisor_id, on_date)
        )

    def is_slot_free(self, advisor_id: str, on_date: date, start_time: str, end_time: str) -> bool:
        report = ConflictService(self.store, self.settings).detect_conflicts(
            advisor_id,
            UserRole.advisor,
            on_date,
            start_time,
            end_time,
        )
        return not report.has_conflict
