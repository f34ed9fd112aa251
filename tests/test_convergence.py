import threading

import pytest

from office_control.errors import ConfigurationError
from office_control.models import PowerState, ProbeOutcome, TargetDevice
from office_control.convergence import (
    ConvergencePoller,
    ConvergenceRequest,
    ConvergenceResult,
    PowerAction,
)


# ========
# FIXTURES
# ========

TARGET = TargetDevice(name="pc", ip_address="192.168.1.50", mac_address="AA:BB:CC:DD:EE:FF")


class FakeClock:
    """Monotonic clock that only advances when the poller sleeps."""
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += seconds


class StubProber:
    """
    Replays a scripted sequence of reachability samples.

    The first sample answers the pre-check; the last one repeats forever.
    """
    def __init__(self, samples):
        self.samples = list(samples)
        self.last = self.samples[-1]
        self.calls = 0
        self.budgets = []

    def check(self, target, budget=None):
        self.calls += 1
        self.budgets.append(budget)
        reachable = self.samples.pop(0) if self.samples else self.last
        return ProbeOutcome(reachable=reachable, strategy="stub" if reachable else None)


class StubDispatcher:
    def __init__(self, result=True, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def _fire(self, name, target):
        self.calls.append((name, target))
        if self.error:
            raise self.error
        return self.result

    def send_wake(self, target):
        return self._fire("wake", target)

    def send_suspend(self, target):
        return self._fire("suspend", target)

    def send_shutdown(self, target):
        return self._fire("shutdown", target)


def make_poller(samples, dispatcher=None):
    clock = FakeClock()
    prober = StubProber(samples)
    dispatcher = dispatcher or StubDispatcher()
    poller = ConvergencePoller(prober, dispatcher, clock=clock, sleep=clock.sleep)
    return poller, prober, dispatcher, clock


def wake_request(deadline=30.0, interval=1.0):
    return ConvergenceRequest(
        target=TARGET,
        expected=PowerState.ONLINE,
        poll_interval=interval,
        deadline=deadline,
    )


# ================================
# TEST GROUP: Already In State
# ================================
# Function: ConvergencePoller.run()
# --------------------------------
@pytest.mark.parametrize(
    "expected, reachable",
    [
        # ✅ Wake requested, PC already answering
        (PowerState.ONLINE, True),

        # ✅ Sleep requested, PC already silent
        (PowerState.OFFLINE, False),
    ],
)
def test_already_in_state_skips_trigger(expected, reachable):
    """Pre-check match returns immediately with zero attempts and no trigger"""
    poller, prober, dispatcher, _ = make_poller([reachable])

    result = poller.run(ConvergenceRequest(target=TARGET, expected=expected))

    assert result.converged is True
    assert result.attempts == 0
    assert result.elapsed_ms == 0
    assert result.observed is expected
    assert result.triggered is False
    assert dispatcher.calls == []
    assert prober.calls == 1


def test_already_online_result_shape():
    """Scenario: MAC AA:BB:CC:DD:EE:FF already online → converged, 0 attempts, 0 ms"""
    poller, _, _, _ = make_poller([True])

    result = poller.run(wake_request())

    assert result.to_dict()["converged"] is True
    assert result.to_dict()["attempts"] == 0
    assert result.to_dict()["elapsedMs"] == 0
    assert result.to_dict()["observedOnline"] is True


# ================================
# TEST GROUP: Convergence Timing
# ================================
def test_online_on_fourth_poll():
    """Scenario: 3 misses at 1 s interval, answers on the 4th poll"""
    poller, _, dispatcher, _ = make_poller([False, False, False, False, True])

    result = poller.run(wake_request())

    assert result.converged is True
    assert result.attempts == 4
    assert result.elapsed_ms == 4000
    assert result.observed_online is True
    assert [name for name, _ in dispatcher.calls] == ["wake"]


@pytest.mark.parametrize("polls", [1, 2, 7, 15])
@pytest.mark.parametrize("interval", [0.5, 1.0, 2.0])
def test_attempts_match_samples_taken(polls, interval):
    """Reachable within N samples → attempts == N and elapsed == N * interval"""
    samples = [False] * polls + [True]   # pre-check + (N-1) misses + hit
    poller, _, _, _ = make_poller(samples)

    result = poller.run(wake_request(deadline=60.0, interval=interval))

    assert result.converged is True
    assert result.attempts == polls
    assert result.elapsed == pytest.approx(polls * interval)


def test_never_responds_times_out_at_deadline():
    """Scenario: never responds, deadline 5 s, interval 1 s → 5 attempts, ~5000 ms"""
    poller, _, _, _ = make_poller([False])

    result = poller.run(wake_request(deadline=5.0, interval=1.0))

    assert result.converged is False
    assert result.attempts == 5
    assert result.elapsed_ms == 5000
    assert result.observed is PowerState.OFFLINE
    assert result.triggered is True


@pytest.mark.parametrize(
    "deadline, interval, expected_attempts",
    [
        # ✅ Deadline is a multiple of the interval
        (10.0, 2.0, 5),

        # ✅ Final wait is shortened to land exactly on the deadline
        (4.5, 1.0, 5),

        # ✅ Interval longer than the deadline: one clipped sample
        (0.5, 1.0, 1),
    ],
)
def test_timeout_never_early_never_late(deadline, interval, expected_attempts):
    """TIMED_OUT lands at or just after the deadline, never more than one interval late"""
    poller, _, _, _ = make_poller([False])

    result = poller.run(wake_request(deadline=deadline, interval=interval))

    assert result.converged is False
    assert result.attempts == expected_attempts
    assert result.elapsed >= deadline
    assert result.elapsed <= deadline + interval


def test_sample_budget_shrinks_to_deadline():
    """Each sample is bounded by the time left; the deadline sample gets none"""
    poller, prober, _, _ = make_poller([False])

    poller.run(wake_request(deadline=3.0, interval=1.0))

    # pre-check is unbounded, then 2 s, 1 s, 0 s left at each sample
    assert prober.budgets == [None, 2.0, 1.0, 0.0]


def test_elapsed_measured_from_trigger_not_precheck():
    """Time spent before the trigger is not counted"""
    clock = FakeClock()

    class SlowPrecheckProber(StubProber):
        def check(self, target, budget=None):
            if self.calls == 0:
                clock.sleep(10.0)   # slow pre-check
            return super().check(target, budget)

    poller = ConvergencePoller(
        SlowPrecheckProber([False, True]), StubDispatcher(), clock=clock, sleep=clock.sleep
    )

    result = poller.run(wake_request())

    assert result.attempts == 1
    assert result.elapsed == pytest.approx(1.0)


# ==================================
# TEST GROUP: Trigger Failure Paths
# ==================================
def test_dispatch_failure_still_polls():
    """Trigger reports failure → loop still runs and returns a well-formed result"""
    dispatcher = StubDispatcher(result=False)
    poller, _, _, _ = make_poller([False, False, True], dispatcher=dispatcher)

    result = poller.run(wake_request())

    assert isinstance(result, ConvergenceResult)
    assert result.converged is True
    assert result.attempts == 2
    assert result.trigger_sent is False


def test_dispatch_failure_and_timeout():
    """Lost trigger and silent device → converged=False with full progress"""
    dispatcher = StubDispatcher(result=False)
    poller, _, _, _ = make_poller([False], dispatcher=dispatcher)

    result = poller.run(wake_request(deadline=3.0))

    assert result.converged is False
    assert result.attempts == 3
    assert result.trigger_sent is False


def test_configuration_error_propagates():
    """Missing configuration is a real failure, not a convergence outcome"""
    dispatcher = StubDispatcher(error=ConfigurationError("no credentials"))
    poller, _, _, _ = make_poller([True], dispatcher=dispatcher)

    with pytest.raises(ConfigurationError):
        poller.run(ConvergenceRequest(target=TARGET, expected=PowerState.OFFLINE))


@pytest.mark.parametrize(
    "action, expected_call",
    [
        (PowerAction.WAKE, "wake"),
        (PowerAction.SUSPEND, "suspend"),
        (PowerAction.SHUTDOWN, "shutdown"),
    ],
)
def test_action_selects_trigger(action, expected_call):
    """Each action dispatches its own trigger exactly once"""
    reachable_now = action is not PowerAction.WAKE
    poller, _, dispatcher, _ = make_poller([reachable_now, not reachable_now])

    result = poller.run(
        ConvergenceRequest(target=TARGET, expected=action.expected, action=action)
    )

    assert result.converged is True
    assert [name for name, _ in dispatcher.calls] == [expected_call]


# =======================
# TEST GROUP: Cancelation
# =======================
def test_cancel_stops_polling():
    """A set cancel event ends the run as not converged without sampling"""
    poller, prober, _, _ = make_poller([False])
    cancel = threading.Event()
    cancel.set()

    result = poller.run(wake_request(), cancel=cancel)

    assert result.converged is False
    assert result.cancelled is True
    assert result.attempts == 0
    assert prober.calls == 1   # pre-check only


# ==============================
# TEST GROUP: Request Validation
# ==============================
@pytest.mark.parametrize(
    "kwargs",
    [
        # ❌ Zero interval would spin
        {"expected": PowerState.ONLINE, "poll_interval": 0},

        # ❌ Negative deadline
        {"expected": PowerState.ONLINE, "deadline": -1},

        # ❌ Suspend cannot converge to ONLINE
        {"expected": PowerState.ONLINE, "action": PowerAction.SUSPEND},
    ],
)
def test_invalid_request(kwargs):
    with pytest.raises(ValueError):
        ConvergenceRequest(target=TARGET, **kwargs)


def test_default_action_follows_expected_state():
    assert ConvergenceRequest(TARGET, PowerState.ONLINE).effective_action is PowerAction.WAKE
    assert ConvergenceRequest(TARGET, PowerState.OFFLINE).effective_action is PowerAction.SUSPEND
