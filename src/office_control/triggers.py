# --- Standard library imports ---
from enum import Enum

# --- Third-party imports ---
from wakeonlan import send_magic_packet

# --- Project imports ---
from .telemetry import tlog
from .logger import get_logger
from .utils import subnet_broadcast
from .models import TargetDevice
from .remote import RemoteCommandClient
from .errors import ConfigurationError, RemoteConnectionError, RemoteExecutionError


class DispatchFailure(Enum):
    """Why a remote power command did not go out. Logged, never branched on."""
    CONNECT = "session not established"
    EXEC = "command not executed"
    EXIT_STATUS = "non-zero exit status"


class TriggerDispatcher:
    """
    Fire-and-forget power triggers.

    Responsibilities:
    • Emit Wake-on-LAN magic packets
    • Run exactly one suspend/shutdown command over SSH

    Non-responsibilities:
    • Never waits for the device to change state
    • No retries
    """

    def __init__(
        self,
        remote: RemoteCommandClient,
        wol_broadcast: str = "255.255.255.255",
        wol_port: int = 9,
        use_subnet_broadcast: bool = True,
        suspend_command: str = "systemctl suspend",
        shutdown_command: str = "sudo systemctl poweroff",
        command_timeout: float = 5.0,
    ):
        self.logger = get_logger("triggers")
        self.remote = remote
        self.wol_broadcast = wol_broadcast
        self.wol_port = wol_port
        self.use_subnet_broadcast = use_subnet_broadcast
        self.suspend_command = suspend_command
        self.shutdown_command = shutdown_command
        self.command_timeout = command_timeout

    # ──────────────────────────────────────────────────────────────
    # Wake
    # ──────────────────────────────────────────────────────────────

    def _emit(self, mac: str, address: str) -> bool:
        try:
            send_magic_packet(mac, ip_address=address, port=self.wol_port)
        except (ValueError, OSError) as e:
            self.logger.error(
                f"WOL packet to {mac} via {address}:{self.wol_port} failed "
                f"({e.__class__.__name__}: {e})"
            )
            return False

        self.logger.debug(f"WOL packet sent to {mac} via {address}:{self.wol_port}")
        return True

    def send_wake(self, target: TargetDevice) -> bool:
        """
        Send a magic packet to the target's MAC address.

        A second packet goes to the /24 broadcast derived from the target's IP
        when enabled. Returns True if at least one emission left the host.

        Raises:
            ConfigurationError: the target has no MAC address.
        """
        if not target.mac_address:
            raise ConfigurationError(f"No MAC address configured for {target.name}")

        addresses = [self.wol_broadcast]
        secondary = subnet_broadcast(target.ip_address) if self.use_subnet_broadcast else None
        if secondary and secondary != self.wol_broadcast:
            addresses.append(secondary)

        results = [self._emit(target.mac_address, address) for address in addresses]
        sent = any(results)

        tlog(
            self.logger,
            "📡" if sent else "🔴",
            "TRIGGER",
            "WAKE SENT" if sent else "WAKE FAILED",
            primary=target.mac_address,
            meta=" | ".join(addresses),
        )
        return sent

    # ──────────────────────────────────────────────────────────────
    # Suspend / Shutdown
    # ──────────────────────────────────────────────────────────────

    def send_suspend(self, target: TargetDevice) -> bool:
        """
        Ask the target to suspend. Does not wait for it to go offline.

        Raises:
            ConfigurationError: the target has no address or SSH credentials.
        """
        return self._send_power_command(target, self.suspend_command, "SUSPEND")

    def send_shutdown(self, target: TargetDevice) -> bool:
        """Ask the target to power off. Same contract as `send_suspend`."""
        return self._send_power_command(target, self.shutdown_command, "SHUTDOWN")

    def _send_power_command(self, target: TargetDevice, command: str, action: str) -> bool:
        creds = target.credentials
        if not target.ip_address:
            raise ConfigurationError(f"No IP address configured for {target.name}")
        if not creds or not creds.usable:
            raise ConfigurationError(
                f"SSH credentials not configured for {target.name}; "
                f"cannot send {action.lower()} command"
            )

        self.logger.info(f"Executing {action.lower()} command on {target.ip_address}: {command}")

        failure: DispatchFailure | None = None
        detail = ""
        try:
            exit_status = self.remote.run(
                target.ip_address, creds, command, timeout=self.command_timeout
            )
            if exit_status != 0:
                failure = DispatchFailure.EXIT_STATUS
                detail = f"exit={exit_status}"
        except RemoteConnectionError as e:
            failure = DispatchFailure.CONNECT
            detail = str(e)
        except RemoteExecutionError as e:
            failure = DispatchFailure.EXEC
            detail = str(e)

        if failure is None:
            tlog(self.logger, "📡", "TRIGGER", f"{action} SENT", primary=target.ip_address)
            return True

        tlog(
            self.logger,
            "🔴",
            "TRIGGER",
            f"{action} FAILED",
            primary=failure.value,
            meta=detail,
        )
        return False
