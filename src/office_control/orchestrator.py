# --- Future imports ---
from __future__ import annotations

# --- Standard library imports ---
from dataclasses import dataclass, field
from concurrent.futures import ThreadPoolExecutor

# --- Project imports ---
from .telemetry import tlog
from .lifx import LifxClient
from .logger import get_logger
from .models import TargetDevice
from .convergence import ConvergencePoller, ConvergenceRequest, ConvergenceResult, PowerAction


@dataclass(frozen=True)
class LightingResult:
    """Per-light outcome of one lighting operation."""
    per_device: dict[str, bool] = field(default_factory=dict)
    scope: str = "all"
    fallback: bool = False
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None and bool(self.per_device) and all(self.per_device.values())

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "scope": self.scope,
            "fallback": self.fallback,
            "perDeviceSuccess": dict(self.per_device),
            "error": self.error,
        }


@dataclass(frozen=True)
class BundleResult:
    """
    Device convergence and lighting outcomes side by side.

    Each half is reported as-is; there is no combined
    success flag.
    """
    device: ConvergenceResult | None
    lights: LightingResult
    device_error: str | None = None

    def to_dict(self) -> dict:
        return {
            "device": self.device.to_dict() if self.device else None,
            "deviceError": self.device_error,
            "lights": self.lights.to_dict(),
        }


class BundleOrchestrator:
    """
    Runs a device convergence and a lighting change concurrently.

    Responsibilities:
    • Start both halves together and wait for both
    • Isolate failures: an exception on one side is captured and reported,
      never allowed to cancel or hide the other
    • Fall back to all lights, once, when a group scope matches nothing
    """

    def __init__(
        self,
        poller: ConvergencePoller,
        lights: LifxClient,
        target: TargetDevice,
        poll_interval: float = 1.0,
        wake_deadline: float = 60.0,
        sleep_deadline: float = 30.0,
    ):
        self.logger = get_logger("orchestrator")
        self.poller = poller
        self.lights = lights
        self.target = target
        self.poll_interval = poll_interval
        self.wake_deadline = wake_deadline
        self.sleep_deadline = sleep_deadline

    def arrive(self, group: str | None = None) -> BundleResult:
        """Wake-and-verify the target while turning lights on."""
        return self._run(PowerAction.WAKE, on=True, group=group)

    def leave(self, group: str | None = None, action: PowerAction = PowerAction.SUSPEND) -> BundleResult:
        """Suspend-and-verify (or shutdown) the target while turning lights off."""
        return self._run(action, on=False, group=group)

    def switch_lights(self, on: bool, group: str | None = None) -> LightingResult:
        """
        Apply a power change to a group, or to every light.

        A group that matches zero lights falls back to all lights exactly once.
        """
        if group is None:
            return LightingResult(per_device=self.lights.set_all_power(on), scope="all")

        results = self.lights.set_group_power(group, on)
        if results:
            return LightingResult(per_device=results, scope=f"group:{group}")

        self.logger.warning(f"Group [{group}] matched no lights; applying to all lights")
        return LightingResult(
            per_device=self.lights.set_all_power(on),
            scope="all",
            fallback=True,
        )

    def _run(self, action: PowerAction, on: bool, group: str | None) -> BundleResult:
        deadline = self.wake_deadline if action is PowerAction.WAKE else self.sleep_deadline
        request = ConvergenceRequest(
            target=self.target,
            expected=action.expected,
            poll_interval=self.poll_interval,
            deadline=deadline,
            action=action,
        )

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="bundle") as pool:
            device_future = pool.submit(self.poller.run, request)
            lights_future = pool.submit(self.switch_lights, on, group)

            device: ConvergenceResult | None = None
            device_error: str | None = None
            try:
                device = device_future.result()
            except Exception as e:
                self.logger.exception(f"Device {action.value} failed")
                device_error = f"{e.__class__.__name__}: {e}"

            try:
                lights = lights_future.result()
            except Exception as e:
                self.logger.exception("Lighting change failed")
                lights = LightingResult(
                    scope=f"group:{group}" if group else "all",
                    error=f"{e.__class__.__name__}: {e}",
                )

        tlog(
            self.logger,
            "🏁",
            "BUNDLE",
            "ARRIVE" if on else "LEAVE",
            primary=(
                "device error" if device is None
                else "converged" if device.converged
                else "unverified"
            ),
            meta=f"lights={sum(lights.per_device.values())}/{len(lights.per_device)} ok",
        )
        return BundleResult(device=device, lights=lights, device_error=device_error)
