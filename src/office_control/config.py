# --- Standard library imports ---
import os

# --- Third-party imports ---
from dotenv import load_dotenv


# Load .env once
load_dotenv()

class Config:
    """Centralized config for Server, Target PC and Lighting parameters"""

    # --- Server ---
    HOST = os.getenv("HOST", "0.0.0.0")

    try:
        PORT = int(os.getenv("PORT", 3000))
    except ValueError:
        PORT = 3000

    # --- Network Policy (NOT user configurable) ---
    API_TIMEOUT = 8   # seconds (lighting vendor API)
    MAX_PROBE_TIMEOUT = 3   # seconds (hard cap per probe strategy)

    # --- Observability Policy ---
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_TIMING = os.getenv("LOG_TIMING", "false").lower() == "true"

    # --- Convergence Policy ---
    try:
        POLL_INTERVAL = float(os.getenv("POLL_INTERVAL", 1))
    except ValueError:
        POLL_INTERVAL = 1.0

    try:
        WAKE_TIMEOUT = float(os.getenv("WAKE_TIMEOUT", 60))
    except ValueError:
        WAKE_TIMEOUT = 60.0

    try:
        SLEEP_TIMEOUT = float(os.getenv("SLEEP_TIMEOUT", 30))
    except ValueError:
        SLEEP_TIMEOUT = 30.0

    # --- Target PC ---
    class PC:
        MAC_ADDRESS = os.getenv("PC_MAC_ADDRESS")
        IP_ADDRESS = os.getenv("PC_IP_ADDRESS")

        SSH_USER = os.getenv("PC_SSH_USER")
        SSH_PASSWORD = os.getenv("PC_SSH_PASSWORD")
        SSH_KEY_PATH = os.getenv("PC_SSH_KEY_PATH")

        try:
            SSH_PORT = int(os.getenv("PC_SSH_PORT", 22))
        except ValueError:
            SSH_PORT = 22

        SUSPEND_COMMAND = os.getenv("SUSPEND_COMMAND", "systemctl suspend")
        SHUTDOWN_COMMAND = os.getenv("SHUTDOWN_COMMAND", "sudo systemctl poweroff")

    # --- Wake-on-LAN ---
    class WOL:
        BROADCAST_ADDRESS = os.getenv("WOL_BROADCAST_ADDRESS", "255.255.255.255")

        try:
            PORT = int(os.getenv("WOL_PORT", 9))
        except ValueError:
            PORT = 9

        SUBNET_BROADCAST = (
            os.getenv("WOL_SUBNET_BROADCAST", "true").lower() == "true"
        )

    # --- Reachability Probes ---
    class Probe:
        TCP_PORTS = os.getenv("PROBE_TCP_PORTS", "22,3389")

        try:
            TIMEOUT = float(os.getenv("PROBE_TIMEOUT", 2))
        except ValueError:
            TIMEOUT = 2.0

    # --- LIFX Lighting ---
    class Lifx:
        API_TOKEN = os.getenv("LIFX_API_TOKEN")
        API_BASE_URL = os.getenv("LIFX_API_BASE_URL", "https://api.lifx.com/v1")
        LIGHTS = os.getenv("LIFX_LIGHTS", "[]")   # JSON list of {"id", "name", "group"}

        try:
            TRANSITION = float(os.getenv("LIFX_TRANSITION", 1.0))
        except ValueError:
            TRANSITION = 1.0
