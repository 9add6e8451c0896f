"""
Cycle resolution: which backup runs today and which full backup anchors it.

The weekly cycle starts with a full backup on the configured weekday; every
other day gets an incremental against that week's full backup.
"""

from dataclasses import dataclass
from datetime import date

from . import calendar
from .identifiers import BackupIdentifier, BackupKind


@dataclass(frozen=True)
class CycleDecision:
    """Outcome of resolving a day against the full backup weekday."""
    date: date
    kind: BackupKind
    anchor_date: date

    @property
    def identifier(self) -> BackupIdentifier:
        return BackupIdentifier(date=self.date, kind=self.kind)

    @property
    def anchor_identifier(self) -> BackupIdentifier:
        return BackupIdentifier(date=self.anchor_date, kind=BackupKind.FULL)


def resolve_today(today: date, full_weekday: int) -> BackupKind:
    """Return FULL on the full backup weekday, INCREMENTAL on every other day."""
    if calendar.weekday_of(today) == full_weekday:
        return BackupKind.FULL
    return BackupKind.INCREMENTAL


def anchor_full_date(today: date, full_weekday: int) -> date:
    """
    Return the most recent date on or before ``today`` falling on ``full_weekday``.

    On the full backup weekday itself the anchor is ``today``.
    """
    assert 1 <= full_weekday <= 7, f"weekday out of range: {full_weekday}"
    diff = (calendar.weekday_of(today) - full_weekday) % 7
    return calendar.days_from_date(today, -diff)


def resolve_cycle(today: date, full_weekday: int) -> CycleDecision:
    return CycleDecision(
        date=today,
        kind=resolve_today(today, full_weekday),
        anchor_date=anchor_full_date(today, full_weekday)
    )
