# --- Standard library imports ---
from dataclasses import dataclass

# --- Project imports ---
from .config import Config
from .logger import get_logger
from .errors import ConfigurationError
from .utils import is_valid_ip, parse_ports
from .lifx import LifxClient, parse_lights
from .remote import RemoteCommandClient
from .triggers import TriggerDispatcher
from .convergence import ConvergencePoller
from .orchestrator import BundleOrchestrator
from .models import SshCredentials, TargetDevice
from .probes import IcmpPingProbe, ReachabilityProber, SshHandshakeProbe, TcpPortProbe


logger = get_logger("bootstrap")


@dataclass(frozen=True)
class Services:
    """
    Everything the HTTP layer needs, built once at startup.

    Passed explicitly into `create_app`; nothing is held in module globals.
    """
    target: TargetDevice
    prober: ReachabilityProber
    dispatcher: TriggerDispatcher
    poller: ConvergencePoller
    lifx: LifxClient
    orchestrator: BundleOrchestrator
    poll_interval: float
    wake_timeout: float
    sleep_timeout: float


def bootstrap(cfg=Config) -> Services:
    """
    Validate configuration and build the service graph.

    Hard configuration violations raise ConfigurationError and abort startup.
    Reachability of the target is only logged.
    """
    _validate_config(cfg)
    services = build_services(cfg)
    _log_startup_state(services)
    return services


def _validate_config(cfg) -> None:
    missing = [
        name for name, value in (
            ("PC_MAC_ADDRESS", cfg.PC.MAC_ADDRESS),
            ("PC_IP_ADDRESS", cfg.PC.IP_ADDRESS),
            ("LIFX_API_TOKEN", cfg.Lifx.API_TOKEN),
        )
        if not value
    ]
    if missing:
        raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

    if not is_valid_ip(cfg.PC.IP_ADDRESS):
        raise ConfigurationError(f"Invalid PC_IP_ADDRESS: {cfg.PC.IP_ADDRESS}")

    if cfg.POLL_INTERVAL <= 0:
        raise ConfigurationError(f"POLL_INTERVAL must be positive, got {cfg.POLL_INTERVAL}")

    if cfg.WAKE_TIMEOUT < cfg.POLL_INTERVAL or cfg.SLEEP_TIMEOUT < cfg.POLL_INTERVAL:
        raise ConfigurationError(
            "WAKE_TIMEOUT and SLEEP_TIMEOUT must be at least one POLL_INTERVAL"
        )


def build_target(cfg=Config) -> TargetDevice:
    credentials = None
    if cfg.PC.SSH_USER:
        credentials = SshCredentials(
            username=cfg.PC.SSH_USER,
            password=cfg.PC.SSH_PASSWORD,
            key_path=cfg.PC.SSH_KEY_PATH,
            port=cfg.PC.SSH_PORT,
        )

    return TargetDevice(
        name="pc",
        ip_address=cfg.PC.IP_ADDRESS,
        mac_address=cfg.PC.MAC_ADDRESS,
        credentials=credentials,
    )


def build_services(cfg=Config) -> Services:
    """Composition root: construct every collaborator exactly once."""
    probe_timeout = min(cfg.Probe.TIMEOUT, cfg.MAX_PROBE_TIMEOUT)

    remote = RemoteCommandClient()
    prober = ReachabilityProber([
        IcmpPingProbe(timeout=probe_timeout),
        TcpPortProbe(ports=parse_ports(cfg.Probe.TCP_PORTS), timeout=probe_timeout),
        SshHandshakeProbe(remote, timeout=probe_timeout),
    ])
    dispatcher = TriggerDispatcher(
        remote,
        wol_broadcast=cfg.WOL.BROADCAST_ADDRESS,
        wol_port=cfg.WOL.PORT,
        use_subnet_broadcast=cfg.WOL.SUBNET_BROADCAST,
        suspend_command=cfg.PC.SUSPEND_COMMAND,
        shutdown_command=cfg.PC.SHUTDOWN_COMMAND,
    )
    poller = ConvergencePoller(prober, dispatcher)

    lifx = LifxClient(
        api_token=cfg.Lifx.API_TOKEN,
        lights=parse_lights(cfg.Lifx.LIGHTS),
        api_base_url=cfg.Lifx.API_BASE_URL,
        timeout=cfg.API_TIMEOUT,
        default_duration=cfg.Lifx.TRANSITION,
    )

    target = build_target(cfg)
    orchestrator = BundleOrchestrator(
        poller,
        lifx,
        target,
        poll_interval=cfg.POLL_INTERVAL,
        wake_deadline=cfg.WAKE_TIMEOUT,
        sleep_deadline=cfg.SLEEP_TIMEOUT,
    )

    return Services(
        target=target,
        prober=prober,
        dispatcher=dispatcher,
        poller=poller,
        lifx=lifx,
        orchestrator=orchestrator,
        poll_interval=cfg.POLL_INTERVAL,
        wake_timeout=cfg.WAKE_TIMEOUT,
        sleep_timeout=cfg.SLEEP_TIMEOUT,
    )


def _log_startup_state(services: Services) -> None:
    """Non-fatal observations; the PC being asleep at startup is normal."""
    target = services.target

    outcome = services.prober.check(target)
    if outcome.reachable:
        logger.info(f"PC reachable at startup ({target.ip_address} via {outcome.strategy})")
    else:
        logger.info(f"PC not reachable at startup ({target.ip_address})")

    if not target.credentials or not target.credentials.usable:
        logger.warning("SSH credentials not configured; sleep/shutdown disabled")

    if not services.lifx.lights:
        logger.warning("No LIFX lights configured; lighting actions will be no-ops")
