# --- Standard library imports ---
import time
import socket

# --- Project imports ---
from .logger import get_logger


# Define the logger once for the entire module
logger = get_logger("utils")

def ping_host(ip: str, port: int = 80, timeout: float = 1.0) -> bool:
    """
    Check host reachability on a single TCP port.

    Performs a TCP connection (Layer 4) to the given IP/hostname and port,
    avoiding ICMP so no admin privileges are required. A refused connection
    still proves the host stack is up, but is reported as unreachable here:
    only an accepted connection counts.

    Args:
        ip: IP address or hostname to check.
        port: TCP port to attempt (default 80).
        timeout: Seconds before giving up.

    Returns:
        True if the host accepted the connection, False otherwise.
    """
    try:
        with socket.create_connection((ip, port), timeout=timeout):
            return True
    except (OSError, socket.timeout):
        return False

def is_valid_ip(ip: str | None) -> bool:
    """
    Validate an IPv4 address using socket.

    Args:
        ip: IPv4 address string to validate.

    Returns:
        True if the IPv4 address is valid, False otherwise.
    """
    if not ip:
        return False

    try:
        socket.inet_pton(socket.AF_INET, ip)
        return True
    except (socket.error, TypeError):
        return False

def subnet_broadcast(ip: str | None) -> str | None:
    """
    Derive the /24 broadcast address for an IPv4 address.

    Some switches and routers only forward directed broadcasts, so a wake
    packet sent to 255.255.255.255 never reaches the target.

    Returns:
        "a.b.c.255", or None if `ip` is not a valid IPv4 address.
    """
    if not is_valid_ip(ip):
        return None

    octets = ip.split(".")
    return ".".join(octets[:3] + ["255"])

def parse_ports(raw: str) -> tuple[int, ...]:
    """
    Parse a comma-separated port list ("22,3389") preserving order.

    Blank and non-numeric entries are skipped with a warning.
    """
    ports = []
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        try:
            port = int(item)
        except ValueError:
            logger.warning(f"Ignoring invalid port {item!r}")
            continue
        if 0 < port < 65536:
            ports.append(port)
        else:
            logger.warning(f"Ignoring out-of-range port {port}")
    return tuple(ports)

# ============================================================
# Performance Timing Utilities (optional instrumentation)
# ============================================================

class Timer:
    def __init__(self, logger):
        self.logger = logger
        self.cycle_start = None
        self.lap_start = None

    def start_cycle(self):
        """Call once at the beginning of a measured operation."""
        now = time.perf_counter()  # Recommended clock for benchmarking
        self.cycle_start = now
        self.lap_start = now

    def lap(self, label: str):
        """Measure time since last lap."""
        if self.lap_start is None:
            return

        now = time.perf_counter()
        delta_ms = (now - self.lap_start) * 1000
        self.logger.timing(f"Timing | {label:<34} [{delta_ms:8.1f} ms]")
        self.lap_start = now

    def end_cycle(self, label: str = "Total"):
        """End-to-end duration."""
        if self.cycle_start is None:
            return
        total_ms = (time.perf_counter() - self.cycle_start) * 1000
        self.logger.timing(f"Timing | {label:<34} [{total_ms:8.1f} ms]")
        self.cycle_start = None
        self.lap_start = None
