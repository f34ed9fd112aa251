# --- Future imports ---
from __future__ import annotations

# --- Standard library imports ---
from enum import Enum
from dataclasses import dataclass


class PowerState(Enum):
    """Observed or expected power state of a target device."""
    ONLINE = "online"
    OFFLINE = "offline"

    @classmethod
    def from_reachable(cls, reachable: bool) -> PowerState:
        return cls.ONLINE if reachable else cls.OFFLINE

    @property
    def is_online(self) -> bool:
        return self is PowerState.ONLINE

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SshCredentials:
    """
    Remote shell credentials for a target.

    A key path takes precedence over a password when both are present.
    """
    username: str
    password: str | None = None
    key_path: str | None = None
    port: int = 22

    @property
    def usable(self) -> bool:
        return bool(self.username and (self.password or self.key_path))


@dataclass(frozen=True)
class TargetDevice:
    """
    A machine whose power state is controlled and verified.

    Immutable after configuration load.
    """
    name: str
    ip_address: str | None = None
    mac_address: str | None = None
    credentials: SshCredentials | None = None

    def __str__(self) -> str:
        return f"{self.name} ({self.ip_address or self.mac_address or '?'})"


@dataclass(frozen=True)
class ProbeOutcome:
    """
    Result of one reachability check.

    `strategy` names the strategy that answered positively, and is None when
    every strategy came back negative. Diagnostics only.
    """
    reachable: bool
    strategy: str | None = None

    @property
    def state(self) -> PowerState:
        return PowerState.from_reachable(self.reachable)
