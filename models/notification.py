# models/notification.py
"""
Plain value types shared by the notification pipeline.

These are not ORM rows: they live for one notification cycle only.
"""
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, FrozenSet

if TYPE_CHECKING:
    from models.token_data import TokenData


@dataclass(frozen=True)
class PricePoint:
    """One sample of the external price series. `timestamp` is grid-aligned epoch seconds."""
    timestamp: int
    price: float


@dataclass(frozen=True)
class AlertMarker:
    """A historical alert drawn on the chart, pinned to a price present on the line."""
    timestamp: int
    price: float


@dataclass(frozen=True)
class Recipient:
    id: int
    external_id: int
    language_code: str = "en"
    subscribed_chains: FrozenSet[str] = field(default_factory=frozenset)


@dataclass
class NotificationContent:
    token: "TokenData"
    message: str
    chart: bytes
    action_url: str

    @property
    def chain_id(self) -> str:
        return (self.token.chain_id or "").lower()


@dataclass
class DispatchReport:
    recipients: int = 0
    delivered: int = 0
    failed: int = 0
    skipped: int = 0

    def merge(self, other: "DispatchReport") -> None:
        self.recipients += other.recipients
        self.delivered += other.delivered
        self.failed += other.failed
        self.skipped += other.skipped
