"""
Ghost Pool Request States

    IDLE -> ENCRYPTING -> BUILT -> SIMULATED -> SUBMITTED -> AWAITING_CALLBACK
         -> FINALIZED | FAILED | TIMED_OUT

FAILED is reachable from every non-terminal state. TIMED_OUT is not terminal:
the computation may still land, so a later poll may move it on.
"""

from __future__ import annotations
import logging
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, FrozenSet, Optional

from ghostpool.core.types import PoolState, RequestKind
from ghostpool.errors import InternalError, Stage

logger = logging.getLogger(__name__)


class RequestState(str, Enum):
    IDLE = "idle"
    ENCRYPTING = "encrypting"
    BUILT = "built"
    SIMULATED = "simulated"
    SUBMITTED = "submitted"
    AWAITING_CALLBACK = "awaiting_callback"
    FINALIZED = "finalized"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


TERMINAL_STATES: FrozenSet[RequestState] = frozenset({RequestState.FINALIZED, RequestState.FAILED})

TRANSITIONS: Dict[RequestState, FrozenSet[RequestState]] = {
    RequestState.IDLE: frozenset({RequestState.ENCRYPTING}),
    RequestState.ENCRYPTING: frozenset({RequestState.BUILT}),
    RequestState.BUILT: frozenset({RequestState.SIMULATED, RequestState.SUBMITTED}),
    RequestState.SIMULATED: frozenset({RequestState.SUBMITTED}),
    RequestState.SUBMITTED: frozenset({RequestState.AWAITING_CALLBACK}),
    RequestState.AWAITING_CALLBACK: frozenset({
        RequestState.FINALIZED, RequestState.TIMED_OUT,
    }),
    RequestState.TIMED_OUT: frozenset({
        RequestState.AWAITING_CALLBACK, RequestState.FINALIZED,
    }),
    RequestState.FINALIZED: frozenset(),
    RequestState.FAILED: frozenset(),
}


def can_transition(current: RequestState, target: RequestState) -> bool:
    if target is RequestState.FAILED:
        return current not in TERMINAL_STATES
    return target in TRANSITIONS[current]


class Outcome(str, Enum):
    """What the caller learns about a submitted request."""
    FINALIZED = "finalized"
    FAILED = "failed"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class CallbackOutcome:
    request_id: int
    outcome: Outcome
    checks: int = 0
    pool_state: Optional[PoolState] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "request_id": str(self.request_id),
            "outcome": self.outcome.value,
            "checks": self.checks,
            "error": self.error,
            "pool": self.pool_state.to_dict() if self.pool_state else None,
        }


@dataclass(frozen=True)
class RequestRecord:
    """
    Persisted trace of one submitted request.

    Holds addresses, counters and signatures only; never secrets.
    """
    request_id: int
    kind: RequestKind
    pool: str
    computation: str
    amount: int
    baseline_deposits: int
    baseline_withdrawals: int
    baseline_state_nonce: int
    state: RequestState = RequestState.IDLE
    signature: Optional[str] = None
    last_valid_height: Optional[int] = None
    failed_stage: Optional[Stage] = None
    error: Optional[str] = None
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    def advance(self, target: RequestState, **changes) -> RequestRecord:
        """
        Copy of this record in state `target`.

        Raises:
            InternalError: If the transition is not allowed
        """
        if not can_transition(self.state, target):
            raise InternalError(
                f"Illegal transition {self.state.value} -> {target.value}",
                {"request_id": self.request_id},
            )
        logger.debug(f"Request {self.request_id}: {self.state.value} -> {target.value}")
        return replace(self, state=target, updated_at=time.time(), **changes)

    def fail(self, stage: Optional[Stage], error: str) -> RequestRecord:
        return self.advance(RequestState.FAILED, failed_stage=stage, error=error)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def to_dict(self) -> dict:
        return {
            "request_id": str(self.request_id),
            "kind": self.kind.value,
            "pool": self.pool,
            "computation": self.computation,
            "amount": self.amount,
            "state": self.state.value,
            "signature": self.signature,
            "last_valid_height": self.last_valid_height,
            "failed_stage": self.failed_stage.value if self.failed_stage else None,
            "error": self.error,
        }
