"""
Outcome Reporting Module

Every bank operation yields exactly one outcome: the calling identity plus a
success kind or an error kind. The OutcomeDispatcher publishes outcomes to
subscribers as BankingEvents using a publish/subscribe mechanism.
"""

from enum import Enum
from typing import Any, Callable, Dict, Hashable, List, Optional, Union
from dataclasses import dataclass, field
from datetime import datetime, timezone
import uuid
import logging
from threading import RLock

from .errors import BankError


class Success(Enum):
    """Success kinds reported in operation outcomes"""
    BANK_SETUP_SUCCESS = "BankSetupSuccess"
    BANK_OPEN_SUCCESS = "BankOpenSuccess"
    BANK_CLOSE_SUCCESS = "BankCloseSuccess"
    ACCOUNT_DEPOSIT_SUCCESS = "AccountDepositSuccess"
    ACCOUNT_WITHDRAWAL_SUCCESS = "AccountWithdrawalSuccess"
    ACCOUNT_DEBIT_SUCCESS = "AccountDebitSuccess"
    ACCOUNT_CREDIT_SUCCESS = "AccountCreditSuccess"


OutcomeKind = Union[Success, BankError]


@dataclass(frozen=True)
class BankTransactionStatus:
    """Either EmitSuccess(Success) or EmitError(BankError)"""
    kind: OutcomeKind

    def __post_init__(self):
        if not isinstance(self.kind, (Success, BankError)):
            raise ValueError("Status kind must be a Success or a BankError")

    @classmethod
    def emit_success(cls, success: Success) -> 'BankTransactionStatus':
        return cls(success)

    @classmethod
    def emit_error(cls, error: BankError) -> 'BankTransactionStatus':
        return cls(error)

    @property
    def is_success(self) -> bool:
        return isinstance(self.kind, Success)

    @property
    def is_error(self) -> bool:
        return isinstance(self.kind, BankError)

    def to_dict(self) -> Dict[str, str]:
        tag = "EmitSuccess" if self.is_success else "EmitError"
        return {tag: self.kind.value}

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> 'BankTransactionStatus':
        if "EmitSuccess" in data:
            return cls(Success(data["EmitSuccess"]))
        return cls(BankError(data["EmitError"]))


@dataclass(frozen=True)
class Outcome:
    """Result of one bank operation"""
    operator: Hashable
    status: BankTransactionStatus

    @property
    def is_success(self) -> bool:
        return self.status.is_success

    @property
    def kind(self) -> OutcomeKind:
        return self.status.kind

    def to_dict(self) -> Dict[str, Any]:
        return {'operator': str(self.operator), 'status': self.status.to_dict()}


@dataclass
class BankingEvent:
    """Published form of an outcome"""
    operator: Hashable
    status: BankTransactionStatus
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @classmethod
    def from_outcome(cls, outcome: Outcome) -> 'BankingEvent':
        return cls(operator=outcome.operator, status=outcome.status)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'operator': str(self.operator),
            'status': self.status.to_dict(),
            'timestamp': self.timestamp.isoformat(),
            'event_id': self.event_id
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BankingEvent':
        """Create from dictionary"""
        return cls(
            operator=data['operator'],
            status=BankTransactionStatus.from_dict(data['status']),
            timestamp=datetime.fromisoformat(data['timestamp']) if isinstance(data['timestamp'], str) else data['timestamp'],
            event_id=data['event_id']
        )


def _handler_name(handler: Callable) -> str:
    return getattr(handler, "__name__", repr(handler))


class OutcomeDispatcher:
    """Outcome reporter, publish/subscribe by outcome kind"""

    def __init__(self):
        self._handlers: Dict[OutcomeKind, List[Callable]] = {}
        self._global_handlers: List[Callable] = []
        self._lock = RLock()
        self.logger = logging.getLogger("custodial_ledger.events")

    def subscribe(self, kind: OutcomeKind, handler: Callable) -> None:
        """Subscribe to one success or error kind"""
        with self._lock:
            self._handlers.setdefault(kind, []).append(handler)
            self.logger.debug(f"Subscribed handler {_handler_name(handler)} to {kind.value}")

    def subscribe_all(self, handler: Callable) -> None:
        """Subscribe to every outcome"""
        with self._lock:
            self._global_handlers.append(handler)
            self.logger.debug(f"Subscribed global handler {_handler_name(handler)}")

    def unsubscribe(self, kind: OutcomeKind, handler: Callable) -> None:
        with self._lock:
            try:
                self._handlers.get(kind, []).remove(handler)
                self.logger.debug(f"Unsubscribed handler {_handler_name(handler)} from {kind.value}")
            except ValueError:
                self.logger.warning(f"Handler {_handler_name(handler)} was not subscribed to {kind.value}")

    def unsubscribe_all(self, handler: Callable) -> None:
        with self._lock:
            try:
                self._global_handlers.remove(handler)
                self.logger.debug(f"Unsubscribed global handler {_handler_name(handler)}")
            except ValueError:
                self.logger.warning(f"Global handler {_handler_name(handler)} was not subscribed")

    def publish(self, outcome: Outcome) -> BankingEvent:
        """Publish an outcome to all matching subscribers"""
        event = BankingEvent.from_outcome(outcome)
        with self._lock:
            kind = outcome.kind
            self.logger.debug(f"Publishing {kind.value} for operator {outcome.operator}")

            handlers = list(self._handlers.get(kind, [])) + list(self._global_handlers)
            for handler in handlers:
                try:
                    handler(event)
                except Exception as e:
                    # A broken subscriber must not change the outcome
                    self.logger.error(f"Error in outcome handler {_handler_name(handler)} for {kind.value}: {e}")
        return event

    def clear(self) -> None:
        with self._lock:
            self._handlers.clear()
            self._global_handlers.clear()
            self.logger.info("All outcome handlers cleared")

    def get_handler_count(self, kind: Optional[OutcomeKind] = None) -> int:
        """Count handlers for one kind, or all handlers"""
        with self._lock:
            if kind is not None:
                return len(self._handlers.get(kind, []))
            total = sum(len(handlers) for handlers in self._handlers.values())
            return total + len(self._global_handlers)
