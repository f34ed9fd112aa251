# --- Standard library imports ---
import json
from dataclasses import dataclass
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable

# --- Third-party imports ---
import requests

# --- Project imports ---
from .logger import get_logger
from .errors import ConfigurationError


@dataclass(frozen=True)
class Light:
    id: str
    name: str
    group: str | None = None


def parse_lights(raw: str) -> list[Light]:
    """
    Parse the LIFX_LIGHTS JSON list into Light definitions.

    Entries missing an id or name are dropped by `LifxClient.add_light`,
    not here; structural problems (bad JSON, non-list) are fatal.

    Raises:
        ConfigurationError: if `raw` is not a JSON list of objects.
    """
    try:
        data = json.loads(raw or "[]")
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"LIFX_LIGHTS is not valid JSON: {e}") from e

    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise ConfigurationError("LIFX_LIGHTS must be a JSON list of objects")

    return [
        Light(
            id=str(item.get("id") or ""),
            name=str(item.get("name") or item.get("id") or ""),
            group=item.get("group"),
        )
        for item in data
    ]


class LifxClient:
    """
    Handles all communication with the LIFX HTTP API and keeps the registry
    of configured lights.

    Lights are addressed by their configured name (optionally scoped by
    group); every vendor call targets a single bulb via the `id:` selector.
    Bulk operations fan out one request per light concurrently and report
    success per light name.
    """

    MAX_WORKERS = 8

    def __init__(
        self,
        api_token: str,
        lights: Iterable[Light] = (),
        api_base_url: str = "https://api.lifx.com/v1",
        timeout: float = 8,
        default_duration: float = 1.0,
    ):
        self.logger = get_logger("lifx")

        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout
        self.default_duration = default_duration
        self.headers = {
            "Authorization": f"Bearer {api_token}",
            "Content-Type": "application/json",
        }

        self._lights: dict[str, Light] = {}
        for light in lights:
            self.add_light(light)

        self.logger.info(f"💡 LIFX client initialized with {len(self._lights)} lights")

    # ──────────────────────────────────────────────────────────────
    # Registry
    # ──────────────────────────────────────────────────────────────

    def add_light(self, light: Light) -> bool:
        if not light.id:
            self.logger.warning(f"Skipping light with empty ID: {light}")
            return False

        self._lights[light.name] = light
        self.logger.debug(f"Light registered [{light.name}] id={light.id} group={light.group}")
        return True

    def get_light(self, name: str) -> Light | None:
        return self._lights.get(name)

    @property
    def lights(self) -> list[Light]:
        return list(self._lights.values())

    def lights_in_group(self, group: str) -> list[Light]:
        return [light for light in self._lights.values() if light.group == group]

    # Private helper for URL construction
    def _light_url(self, light_id: str, state: bool = False) -> str:
        url = f"{self.api_base_url}/lights/id:{light_id}"
        return url + "/state" if state else url

    # ──────────────────────────────────────────────────────────────
    # Power control
    # ──────────────────────────────────────────────────────────────

    def set_power_by_id(self, light_id: str, on: bool, duration: float | None = None) -> bool:
        """
        Set power for a single bulb.

        Returns:
            True when the API accepted the change and every addressed bulb
            reported "ok". Network errors and non-2xx responses return False.
        """
        payload = {
            "power": "on" if on else "off",
            "duration": self.default_duration if duration is None else duration,
        }

        try:
            resp = requests.put(
                self._light_url(light_id, state=True),
                headers=self.headers,
                json=payload,
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            self.logger.error(
                f"LIFX PUT failed for light [{light_id}] → {payload['power']} "
                f"({e.__class__.__name__})"
            )
            return False

        # 207 Multi-Status carries one result per bulb
        try:
            data = resp.json()
        except ValueError:
            data = {}

        if not isinstance(data, dict):
            self.logger.warning(
                f"LIFX light [{light_id}] returned unexpected body: {type(data).__name__}"
            )
            return False

        results = data.get("results", [])
        if not isinstance(results, list):
            results = [results]

        failed = [
            r.get("status") if isinstance(r, dict) else repr(r)
            for r in results
            if not isinstance(r, dict) or r.get("status") != "ok"
        ]
        if failed:
            self.logger.warning(
                f"LIFX light [{light_id}] did not confirm: {', '.join(map(str, failed))}"
            )
            return False

        self.logger.debug(f"LIFX light [{light_id}] → {payload['power']}")
        return True

    def set_power(self, name: str, on: bool, duration: float | None = None) -> bool:
        light = self.get_light(name)
        if not light:
            self.logger.warning(f"Light not found: {name}")
            return False
        return self.set_power_by_id(light.id, on, duration)

    def set_power_many(
        self,
        lights: Iterable[Light],
        on: bool,
        duration: float | None = None,
    ) -> dict[str, bool]:
        """
        Set power for several lights concurrently.

        A failing light never blocks or retries the others.

        Returns:
            Mapping of light name → success.
        """
        lights = list(lights)
        if not lights:
            return {}

        workers = min(self.MAX_WORKERS, len(lights))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="lifx") as pool:
            futures = {
                light.name: pool.submit(self.set_power_by_id, light.id, on, duration)
                for light in lights
            }
            return {name: future.result() for name, future in futures.items()}

    def set_all_power(self, on: bool, duration: float | None = None) -> dict[str, bool]:
        return self.set_power_many(self.lights, on, duration)

    def set_group_power(self, group: str, on: bool, duration: float | None = None) -> dict[str, bool]:
        lights = self.lights_in_group(group)
        if not lights:
            self.logger.warning(f"No lights found in group: {group}")
            return {}
        return self.set_power_many(lights, on, duration)

    # ──────────────────────────────────────────────────────────────
    # State queries
    # ──────────────────────────────────────────────────────────────

    def get_state_by_id(self, light_id: str) -> dict | None:
        """
        Fetch the vendor's view of a single bulb (power, brightness, color...).

        Returns None on any request failure.
        """
        try:
            resp = requests.get(
                self._light_url(light_id),
                headers=self.headers,
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            self.logger.error(f"LIFX GET failed for light [{light_id}] ({e.__class__.__name__})")
            return None

        # Selector endpoints always return a list
        if isinstance(data, list):
            data = data[0] if data else None
        return data if isinstance(data, dict) else None

    def get_state(self, name: str) -> dict | None:
        light = self.get_light(name)
        if not light:
            self.logger.warning(f"Light not found: {name}")
            return None
        return self.get_state_by_id(light.id)

    def get_states(self, lights: Iterable[Light]) -> dict[str, dict | None]:
        lights = list(lights)
        if not lights:
            return {}

        workers = min(self.MAX_WORKERS, len(lights))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="lifx") as pool:
            futures = {light.name: pool.submit(self.get_state_by_id, light.id) for light in lights}
            return {name: future.result() for name, future in futures.items()}

    def get_all_states(self) -> dict[str, dict | None]:
        return self.get_states(self.lights)

    def get_group_states(self, group: str) -> dict[str, dict | None]:
        return self.get_states(self.lights_in_group(group))
