# --- Future imports ---
from __future__ import annotations

# --- Standard library imports ---
import time
import logging
import threading
from enum import Enum, auto
from dataclasses import dataclass
from typing import Callable

# --- Project imports ---
from .telemetry import tlog
from .logger import get_logger
from .probes import ReachabilityProber
from .triggers import TriggerDispatcher
from .models import PowerState, TargetDevice


class ConvergenceState(Enum):
    """
    Lifecycle of one convergence run.

    • IDLE      : invoked, nothing observed yet
    • TRIGGERED : pre-check mismatched; trigger dispatched
    • POLLING   : sampling reachability on a fixed interval
    • CONVERGED : observed state matches expectation (terminal)
    • TIMED_OUT : deadline reached first (terminal, not an error)
    """
    IDLE = auto()
    TRIGGERED = auto()
    POLLING = auto()
    CONVERGED = auto()
    TIMED_OUT = auto()

    def __str__(self) -> str:
        return self.name

CONVERGENCE_EMOJI = {
    ConvergenceState.IDLE:      "⚪",
    ConvergenceState.TRIGGERED: "📡",
    ConvergenceState.POLLING:   "🟡",
    ConvergenceState.CONVERGED: "💚",
    ConvergenceState.TIMED_OUT: "🟠",
}


class PowerAction(Enum):
    """Trigger to fire, and the state it is expected to produce."""
    WAKE = "wake"
    SUSPEND = "suspend"
    SHUTDOWN = "shutdown"

    @property
    def expected(self) -> PowerState:
        return PowerState.ONLINE if self is PowerAction.WAKE else PowerState.OFFLINE

    @classmethod
    def default_for(cls, expected: PowerState) -> PowerAction:
        return cls.WAKE if expected is PowerState.ONLINE else cls.SUSPEND


@dataclass(frozen=True)
class ConvergenceRequest:
    """One wake-and-verify or suspend-and-verify invocation. Times in seconds."""
    target: TargetDevice
    expected: PowerState
    poll_interval: float = 1.0
    deadline: float = 30.0
    action: PowerAction | None = None

    def __post_init__(self):
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.deadline < 0:
            raise ValueError(f"deadline must be non-negative, got {self.deadline}")
        if self.action is not None and self.action.expected is not self.expected:
            raise ValueError(
                f"{self.action.value} cannot converge to {self.expected.value}"
            )

    @property
    def effective_action(self) -> PowerAction:
        return self.action or PowerAction.default_for(self.expected)


@dataclass(frozen=True)
class ConvergenceResult:
    """
    Outcome of a convergence run.

    Invariants:
      - converged=True implies observed == expected
      - converged=False means the deadline (or a cancel) came first; the
        last sample may still match expectation if the device flipped late
      - attempts counts poll samples only, never the pre-check
    """
    converged: bool
    elapsed: float
    attempts: int
    observed: PowerState
    expected: PowerState
    triggered: bool = False
    trigger_sent: bool | None = None
    cancelled: bool = False

    @property
    def elapsed_ms(self) -> int:
        return int(round(self.elapsed * 1000))

    @property
    def observed_online(self) -> bool:
        return self.observed.is_online

    @property
    def already_in_state(self) -> bool:
        return self.converged and not self.triggered

    def to_dict(self) -> dict:
        return {
            "converged": self.converged,
            "elapsedMs": self.elapsed_ms,
            "attempts": self.attempts,
            "observedOnline": self.observed_online,
            "expected": self.expected.value,
            "triggered": self.triggered,
            "triggerSent": self.trigger_sent,
            "cancelled": self.cancelled,
        }


class ConvergencePoller:
    """
    Drive a device toward an expected power state and verify it got there.

    Workflow:
    1. Pre-check reachability; already in state → CONVERGED, no trigger
    2. Dispatch the trigger exactly once (failure does not stop polling)
    3. Sample on a fixed interval until match or deadline

    Each sample gets the time left before the deadline as its probe budget;
    the sample taken at the deadline runs the first strategy only, so a
    timeout lands late by at most one strategy timeout.

    Transient probe and dispatch errors never escape; only configuration
    errors raised by the dispatcher propagate. `clock` and `sleep` are
    injectable so the loop can run against a fake timeline.
    """

    def __init__(
        self,
        prober: ReachabilityProber,
        dispatcher: TriggerDispatcher,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.prober = prober
        self.dispatcher = dispatcher
        self.clock = clock
        self.sleep = sleep
        self.logger = get_logger("convergence")

    def _transition(
        self,
        request: ConvergenceRequest,
        state: ConvergenceState,
        meta: str | None = None,
        level: int = logging.INFO,
    ) -> ConvergenceState:
        tlog(
            self.logger,
            CONVERGENCE_EMOJI[state],
            "CONVERGENCE",
            str(state),
            primary=f"{request.target.name} → {request.expected}",
            meta=meta,
            level=level,
        )
        return state

    def _dispatch(self, request: ConvergenceRequest) -> bool:
        match request.effective_action:
            case PowerAction.WAKE:
                return self.dispatcher.send_wake(request.target)
            case PowerAction.SUSPEND:
                return self.dispatcher.send_suspend(request.target)
            case PowerAction.SHUTDOWN:
                return self.dispatcher.send_shutdown(request.target)

    def _wait(self, seconds: float, cancel: threading.Event | None) -> None:
        if seconds <= 0:
            return
        if cancel is not None:
            cancel.wait(seconds)
        else:
            self.sleep(seconds)

    def run(
        self,
        request: ConvergenceRequest,
        cancel: threading.Event | None = None,
    ) -> ConvergenceResult:
        """
        Run one convergence attempt to completion.

        Args:
            request: target, expected state, interval and deadline.
            cancel: optional event; when set, polling stops at the next
                wake-up and the run reports converged=False, cancelled=True.

        Raises:
            ConfigurationError: the trigger needs configuration the target lacks.
        """
        target = request.target
        expected = request.expected

        state = self._transition(request, ConvergenceState.IDLE)

        # --- Pre-check (not counted as an attempt) ---
        initial = self.prober.check(target)
        if initial.state is expected:
            self._transition(
                request,
                ConvergenceState.CONVERGED,
                meta=f"already {expected} ({initial.strategy or 'no probe'})",
            )
            return ConvergenceResult(
                converged=True,
                elapsed=0.0,
                attempts=0,
                observed=initial.state,
                expected=expected,
            )

        # --- Trigger (exactly once, never retried) ---
        start = self.clock()
        state = self._transition(
            request, ConvergenceState.TRIGGERED, meta=request.effective_action.value
        )
        trigger_sent = self._dispatch(request)
        if not trigger_sent:
            self.logger.warning(
                f"{request.effective_action.value} trigger not confirmed for "
                f"{target.name}; polling anyway"
            )

        # --- Polling ---
        state = self._transition(
            request,
            ConvergenceState.POLLING,
            meta=f"interval={request.poll_interval}s | deadline={request.deadline}s",
        )

        attempts = 0
        observed = initial.state
        cancelled = False

        while state is ConvergenceState.POLLING:
            remaining = request.deadline - (self.clock() - start)
            self._wait(min(request.poll_interval, remaining), cancel)

            if cancel is not None and cancel.is_set():
                cancelled = True
                state = self._transition(
                    request,
                    ConvergenceState.TIMED_OUT,
                    meta=f"cancelled | attempts={attempts}",
                    level=logging.WARNING,
                )
                break

            attempts += 1
            # Sample at the deadline runs only the first probe strategy
            budget = max(request.deadline - (self.clock() - start), 0.0)
            observed = self.prober.check(target, budget=budget).state
            elapsed = self.clock() - start
            self.logger.debug(
                f"Attempt #{attempts}: {target.name} is {observed} "
                f"(elapsed={elapsed:.1f}s)"
            )

            if observed is expected:
                state = self._transition(
                    request,
                    ConvergenceState.CONVERGED,
                    meta=f"elapsed={elapsed:.1f}s | attempts={attempts}",
                )
            elif elapsed >= request.deadline:
                state = self._transition(
                    request,
                    ConvergenceState.TIMED_OUT,
                    meta=f"elapsed={elapsed:.1f}s | attempts={attempts} | last={observed}",
                    level=logging.WARNING,
                )

        return ConvergenceResult(
            converged=state is ConvergenceState.CONVERGED,
            elapsed=self.clock() - start,
            attempts=attempts,
            observed=observed,
            expected=expected,
            triggered=True,
            trigger_sent=trigger_sent,
            cancelled=cancelled,
        )
