# --- Standard library imports ---
import sys
import logging

# --- Project imports ---
from .config import Config


# --- Custom log levels ---
TIMING = 25   # Between INFO (20) and WARNING (30)
logging.addLevelName(TIMING, "TIME")

def timing(self, message, *args, **kwargs):
    """Add `timing` method to Logger for TIMING-level logs."""
    if self.isEnabledFor(TIMING):
        self._log(TIMING, message, args, stacklevel=2, **kwargs)

logging.Logger.timing = timing

# --- Filters ---
class TimingFilter(logging.Filter):
    """Filter out TIMING logs unless explicitly enabled."""
    def __init__(self, enabled: bool):
        super().__init__()
        self.enabled = enabled

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno == TIMING:
            return self.enabled
        return True

# --- Format configuration constants ---
LOG_LEVEL_EMOJIS = {
    logging.DEBUG: "🧱",
    logging.INFO: "🟢",
    TIMING: "⚡️",
    logging.WARNING: "⚠️ ",
    logging.ERROR: "❌",
    logging.CRITICAL: "🔥",
}

# --- Formatters ---
class EmojiFormatter(logging.Formatter):
    """Prefix each record with its level emoji."""

    def format(self, record: logging.LogRecord) -> str:
        record.levelemoji = LOG_LEVEL_EMOJIS.get(record.levelno, "")
        return super().format(record)

# --- Public logging setup API ---
def setup_logging(level=logging.INFO, timing_enabled: bool | None = None) -> None:
    """
    Configure global logging with emoji decorations and optional TIMING logs.

    Werkzeug's per-request access log follows the same level so webhook
    traffic only shows up when running at DEBUG/INFO.
    """
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = EmojiFormatter(
        fmt="%(asctime)s %(levelemoji)s %(name)s:%(funcName)s → %(message)s",
        datefmt="%H:%M:%S",
    )
    handler.setFormatter(formatter)

    # Apply optional TIMING filter based on config
    if timing_enabled is None:
        timing_enabled = Config.LOG_TIMING
    handler.addFilter(TimingFilter(enabled=timing_enabled))
    root.addHandler(handler)

    logging.getLogger("werkzeug").setLevel(level)
    # paramiko logs every transport negotiation at INFO
    logging.getLogger("paramiko").setLevel(logging.WARNING)

def get_logger(name: str) -> logging.Logger:
    """
    Return a namespaced logger for any module.
    """
    return logging.getLogger(f"office_control.{name}")
