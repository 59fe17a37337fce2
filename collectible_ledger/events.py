"""Notification channel for committed contract transactions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

Subscriber = Callable[["Event"], None]

MINTED = "Minted"
TRANSFER = "Transfer"
PAUSED = "Paused"
UNPAUSED = "Unpaused"
SALE_STATUS_FLIPPED = "SaleStatusFlipped"
WITHDRAWAL = "Withdrawal"
ROLE_GRANTED = "RoleGranted"
ROLE_REVOKED = "RoleRevoked"


@dataclass(frozen=True)
class Event:
    name: str
    args: Dict[str, Any]
    contract: str
    tx_index: int
    log_index: int = 0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "args": dict(self.args),
            "contract": self.contract,
            "tx_index": self.tx_index,
            "log_index": self.log_index,
        }


@dataclass
class EventBus:
    """Keeps every published event and fans it out to subscribers.

    Subscribers registered with a name only see events of that name.
    """

    history: List[Event] = field(default_factory=list)
    _subscribers: List[tuple[Optional[str], Subscriber]] = field(default_factory=list)

    def subscribe(self, callback: Subscriber, name: str | None = None) -> Callable[[], None]:
        entry = (name, callback)
        self._subscribers.append(entry)

        def _unsubscribe() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return _unsubscribe

    def publish_all(self, batch: List[Event]) -> None:
        """Deliver a committed batch to every subscriber.

        One failing subscriber does not stop delivery to the others; the first
        error is re-raised once everyone has been called.
        """
        self.history.extend(batch)
        first_error: Optional[BaseException] = None
        for event in batch:
            for name, callback in list(self._subscribers):
                if name is not None and name != event.name:
                    continue
                try:
                    callback(event)
                except Exception as e:
                    if first_error is None:
                        first_error = e
        if first_error is not None:
            raise first_error

    def filter(self, name: str) -> List[Event]:
        return [e for e in self.history if e.name == name]
