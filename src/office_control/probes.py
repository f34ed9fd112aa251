# --- Standard library imports ---
import math
import time
import platform
import subprocess
from typing import Protocol, Sequence

# --- Project imports ---
from .utils import Timer, ping_host
from .logger import get_logger
from .models import ProbeOutcome, TargetDevice
from .remote import RemoteCommandClient
from .errors import RemoteCommandError


logger = get_logger("probes")


class ProbeStrategy(Protocol):
    """One way of asking "is this host up?". Single attempt, bounded latency."""

    name: str

    def check(self, target: TargetDevice) -> bool:
        ...


class IcmpPingProbe:
    """
    One ICMP echo via the system `ping` binary.

    Shelling out avoids needing raw-socket privileges in the service process.
    """
    name = "icmp"

    def __init__(self, timeout: float = 2.0):
        self.timeout = timeout

    def _command(self, ip: str) -> list[str]:
        if platform.system().lower() == "windows":
            return ["ping", "-n", "1", "-w", str(int(self.timeout * 1000)), ip]
        return ["ping", "-c", "1", "-W", str(max(1, math.ceil(self.timeout))), ip]

    def check(self, target: TargetDevice) -> bool:
        if not target.ip_address:
            return False

        try:
            result = subprocess.run(
                self._command(target.ip_address),
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=self.timeout + 1,
            )
        except (OSError, subprocess.SubprocessError):
            return False

        return result.returncode == 0


class TcpPortProbe:
    """TCP connect to each known service port in order; any accept wins."""
    name = "tcp"

    def __init__(self, ports: Sequence[int] = (22, 3389), timeout: float = 1.0):
        self.ports = tuple(ports)
        self.timeout = timeout

    def check(self, target: TargetDevice) -> bool:
        if not target.ip_address:
            return False

        for port in self.ports:
            if ping_host(target.ip_address, port=port, timeout=self.timeout):
                logger.debug(f"{target.ip_address}:{port} accepted connection")
                return True
        return False


class SshHandshakeProbe:
    """
    Full authenticated SSH handshake, closed immediately.

    Slowest strategy and the only one that proves the OS is actually
    serving logins, so it runs last.
    """
    name = "ssh"

    def __init__(self, client: RemoteCommandClient, timeout: float = 2.0):
        self.client = client
        self.timeout = timeout

    def check(self, target: TargetDevice) -> bool:
        creds = target.credentials
        if not target.ip_address or not creds or not creds.usable:
            return False

        try:
            session = self.client.connect(target.ip_address, creds, timeout=self.timeout)
        except RemoteCommandError:
            return False

        session.close()
        return True


class ReachabilityProber:
    """
    Reduce an ordered list of probe strategies to a single verdict.

    • Strategies run in priority order
    • First affirmative answer short-circuits the rest
    • A strategy that raises counts as a negative, never as a failure
    • No side effects on the target
    """

    def __init__(self, strategies: Sequence[ProbeStrategy]):
        self.strategies = list(strategies)
        self.logger = logger

    def check(self, target: TargetDevice, budget: float | None = None) -> ProbeOutcome:
        """
        Run strategies in order until one answers.

        Args:
            target: device to probe.
            budget: optional seconds; once spent, no further strategy is
                started. The first strategy always runs.
        """
        # Per-call timer: one prober is shared by concurrent requests
        timer = Timer(self.logger)
        timer.start_cycle()
        started = time.monotonic()

        for strategy in self.strategies:
            try:
                reachable = strategy.check(target)
            except Exception as e:
                self.logger.debug(
                    f"Probe [{strategy.name}] errored for {target} "
                    f"({e.__class__.__name__}: {e})"
                )
                reachable = False
            timer.lap(f"probe.{strategy.name}")

            if reachable:
                self.logger.debug(f"{target} is online ({strategy.name})")
                timer.end_cycle("probe total")
                return ProbeOutcome(reachable=True, strategy=strategy.name)

            if budget is not None and time.monotonic() - started >= budget:
                self.logger.debug(f"Probe budget of {budget:.1f}s spent after [{strategy.name}]")
                break

        self.logger.debug(f"{target} is offline (all probes negative)")
        timer.end_cycle("probe total")
        return ProbeOutcome(reachable=False)

    def probe(self, target: TargetDevice) -> bool:
        return self.check(target).reachable
