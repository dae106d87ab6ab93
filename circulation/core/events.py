"""
    Outbound circulation events.

    The engine publishes an event only after its transaction commits.
    Subscribers (mailers, dashboards, sync jobs) run after the fact; a
    subscriber that raises is logged and skipped so delivery problems
    never reach the committed operation.
"""

import datetime
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

REQUEST_SUBMITTED = "RequestSubmitted"
REQUEST_APPROVED = "RequestApproved"
REQUEST_REJECTED = "RequestRejected"
REQUEST_CANCELLED = "RequestCancelled"
LOAN_ISSUED = "LoanIssued"
LOAN_RENEWED = "LoanRenewed"
LOAN_RETURNED = "LoanReturned"
ALL = "*"


@dataclass
class Event:
    name: str
    payload: dict = field(default_factory=dict)
    occurred_at: datetime.datetime = field(default_factory=datetime.datetime.now)


class EventBus:

    def __init__(self):
        self._handlers: Dict[str, List[Callable[[Event], None]]] = defaultdict(list)

    def subscribe(self, name: str, handler: Callable[[Event], None]):
        self._handlers[name].append(handler)
        return handler

    def publish(self, event: Event) -> int:
        """Delivers `event`, returning how many handlers accepted it."""
        delivered = 0
        for handler in self._handlers.get(event.name, []) + self._handlers.get(ALL, []):
            try:
                handler(event)
                delivered += 1
            except Exception as e:
                logger.error(f"Subscriber {handler!r} failed on {event.name}: {e}")
        return delivered
