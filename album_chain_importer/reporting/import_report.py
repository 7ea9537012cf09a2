"""
Per-job outcome report: one entry per album id and per item key.
"""
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class OutcomeStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class Outcome:
    """Result of one album creation or item import."""
    key: str
    label: str
    status: OutcomeStatus
    value: Optional[Any] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['status'] = self.status.value
        return data


@dataclass
class ImportReport:
    """Everything an import run produced, keyed by album id and item key."""
    job_id: str
    album_outcomes: Dict[str, Outcome] = field(default_factory=dict)
    item_outcomes: Dict[str, Outcome] = field(default_factory=dict)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    cancelled: bool = False

    def start(self) -> None:
        self.start_time = datetime.now()

    def finish(self) -> None:
        self.end_time = datetime.now()

    def get_duration(self) -> Optional[float]:
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return None

    def record_album(self, outcome: Outcome) -> None:
        self.album_outcomes[outcome.key] = outcome

    def record_item(self, outcome: Outcome) -> None:
        self.item_outcomes[outcome.key] = outcome

    @staticmethod
    def _count(outcomes: Dict[str, Outcome], status: OutcomeStatus) -> int:
        return sum(1 for o in outcomes.values() if o.status is status)

    @property
    def albums_succeeded(self) -> int:
        return self._count(self.album_outcomes, OutcomeStatus.SUCCESS)

    @property
    def albums_failed(self) -> int:
        return self._count(self.album_outcomes, OutcomeStatus.FAILED)

    @property
    def items_succeeded(self) -> int:
        return self._count(self.item_outcomes, OutcomeStatus.SUCCESS)

    @property
    def items_failed(self) -> int:
        return self._count(self.item_outcomes, OutcomeStatus.FAILED)

    @property
    def items_skipped(self) -> int:
        return self._count(self.item_outcomes, OutcomeStatus.SKIPPED)

    @property
    def has_failures(self) -> bool:
        return self.albums_failed > 0 or self.items_failed > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'job_id': self.job_id,
            'start_time': self.start_time.isoformat() if self.start_time else None,
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'duration_seconds': self.get_duration(),
            'cancelled': self.cancelled,
            'summary': {
                'albums_total': len(self.album_outcomes),
                'albums_succeeded': self.albums_succeeded,
                'albums_failed': self.albums_failed,
                'items_total': len(self.item_outcomes),
                'items_succeeded': self.items_succeeded,
                'items_failed': self.items_failed,
                'items_skipped': self.items_skipped,
            },
            'albums': {key: o.to_dict() for key, o in self.album_outcomes.items()},
            'items': {key: o.to_dict() for key, o in self.item_outcomes.items()},
        }
