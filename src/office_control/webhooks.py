"""
Flask front end for the office control webhooks.

Endpoints:
  GET  /health
  GET  /status
  POST /webhooks/wake-pc | sleep-pc | shutdown-pc | ping-pc
  POST /webhooks/light/<name>/<on|off>     GET /webhooks/light/<name>
  POST /webhooks/group/<name>/<on|off>     GET /webhooks/group/<name>
  POST /webhooks/lights/<on|off>           GET /webhooks/lights
  POST /webhooks/office/arrive | leave

Device actions answer with one of three shapes: converged (200),
trigger sent but not verified (202), or an error (500). Lighting lookups
that match nothing answer 404.
"""

# --- Third-party imports ---
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

# --- Project imports ---
from .logger import get_logger
from .bootstrap import Services
from .errors import ConfigurationError
from .convergence import ConvergenceRequest, ConvergenceResult, PowerAction


logger = get_logger("webhooks")

ENDPOINTS = [
    "POST /webhooks/wake-pc",
    "POST /webhooks/sleep-pc",
    "POST /webhooks/shutdown-pc",
    "POST /webhooks/ping-pc",
    "POST /webhooks/light/<name>/<on|off>",
    "GET  /webhooks/light/<name>",
    "POST /webhooks/group/<name>/<on|off>",
    "GET  /webhooks/group/<name>",
    "POST /webhooks/lights/<on|off>",
    "GET  /webhooks/lights",
    "POST /webhooks/office/arrive",
    "POST /webhooks/office/leave",
    "GET  /status",
    "GET  /health",
]

ACTION_VERBS = {
    PowerAction.WAKE: ("came online", "online"),
    PowerAction.SUSPEND: ("went to sleep", "offline"),
    PowerAction.SHUTDOWN: ("shut down", "offline"),
}


def _parse_power(action: str) -> bool | None:
    return {"on": True, "off": False}.get(action.lower())


def _request_param(name: str) -> str | None:
    body = request.get_json(silent=True) or {}
    value = body.get(name) if isinstance(body, dict) else None
    return value if value is not None else request.args.get(name)


def _requested_timeout(default: float) -> float:
    raw = _request_param("timeout")
    if raw is None:
        return default
    try:
        timeout = float(raw)
    except (TypeError, ValueError):
        return default
    return timeout if timeout > 0 else default


def device_payload(result: ConvergenceResult, action: PowerAction) -> tuple[dict, int]:
    """Shape a convergence result as (JSON body, HTTP status)."""
    verb, state = ACTION_VERBS[action]

    if result.already_in_state:
        status, code = "already", 200
        message = f"PC is already {state}"
    elif result.converged:
        status, code = "converged", 200
        message = f"PC {verb} after {result.elapsed:.1f} seconds ({result.attempts} checks)"
    else:
        status, code = "unverified", 202
        message = (
            f"{action.value.capitalize()} trigger sent - PC did not report {state} "
            f"within {result.elapsed:.0f} seconds (may still be in progress)"
        )

    return {
        "success": result.converged,
        "status": status,
        "message": message,
        "result": result.to_dict(),
    }, code


def create_app(services: Services) -> Flask:
    """Build the Flask app around an already-bootstrapped service graph."""
    app = Flask(__name__)

    # ──────────────────────────────────────────────────────────────
    # Error handling
    # ──────────────────────────────────────────────────────────────

    @app.errorhandler(ConfigurationError)
    def handle_configuration_error(e):
        logger.error(f"Configuration error: {e}")
        return jsonify(success=False, status="error", message=str(e)), 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        if isinstance(e, HTTPException):
            return e
        logger.exception(f"Unhandled error on {request.method} {request.path}")
        return jsonify(success=False, status="error", message="Internal server error"), 500

    # ──────────────────────────────────────────────────────────────
    # Health / status
    # ──────────────────────────────────────────────────────────────

    @app.get("/health")
    def health():
        return jsonify(status="ok"), 200

    @app.get("/status")
    def status():
        outcome = services.prober.check(services.target)
        return jsonify(
            success=True,
            system="Office Control System",
            pc={
                "macAddress": services.target.mac_address,
                "ipAddress": services.target.ip_address,
                "online": outcome.reachable,
                "probe": outcome.strategy,
            },
            lifx={
                "configured": bool(services.lifx.lights),
                "lights": [light.name for light in services.lifx.lights],
            },
            endpoints=ENDPOINTS,
        ), 200

    # ──────────────────────────────────────────────────────────────
    # PC power
    # ──────────────────────────────────────────────────────────────

    def _converge(action: PowerAction, default_timeout: float):
        logger.info(f"{action.value.capitalize()} PC request received")
        result = services.poller.run(
            ConvergenceRequest(
                target=services.target,
                expected=action.expected,
                poll_interval=services.poll_interval,
                deadline=_requested_timeout(default_timeout),
                action=action,
            )
        )
        body, code = device_payload(result, action)
        return jsonify(body), code

    @app.post("/webhooks/wake-pc")
    def wake_pc():
        return _converge(PowerAction.WAKE, services.wake_timeout)

    @app.post("/webhooks/sleep-pc")
    def sleep_pc():
        return _converge(PowerAction.SUSPEND, services.sleep_timeout)

    @app.post("/webhooks/shutdown-pc")
    def shutdown_pc():
        return _converge(PowerAction.SHUTDOWN, services.sleep_timeout)

    @app.post("/webhooks/ping-pc")
    def ping_pc():
        outcome = services.prober.check(services.target)
        return jsonify(
            success=True,
            online=outcome.reachable,
            probe=outcome.strategy,
        ), 200

    # ──────────────────────────────────────────────────────────────
    # Lights
    # ──────────────────────────────────────────────────────────────

    def _lights_payload(results: dict[str, bool]):
        success = bool(results) and all(results.values())
        return jsonify(success=success, results=results), 200 if success else 502

    @app.post("/webhooks/light/<name>/<action>")
    def control_light(name, action):
        on = _parse_power(action)
        if on is None:
            return jsonify(success=False, message=f"Unknown action: {action}"), 400
        if not services.lifx.get_light(name):
            return jsonify(success=False, status="not_found", message=f"Light not found: {name}"), 404
        return _lights_payload({name: services.lifx.set_power(name, on)})

    @app.get("/webhooks/light/<name>")
    def light_state(name):
        if not services.lifx.get_light(name):
            return jsonify(success=False, status="not_found", message=f"Light not found: {name}"), 404
        state = services.lifx.get_state(name)
        return jsonify(success=state is not None, light=name, state=state), 200 if state is not None else 502

    @app.post("/webhooks/group/<name>/<action>")
    def control_group(name, action):
        on = _parse_power(action)
        if on is None:
            return jsonify(success=False, message=f"Unknown action: {action}"), 400
        results = services.lifx.set_group_power(name, on)
        if not results:
            return jsonify(success=False, status="not_found", message=f"No lights in group: {name}"), 404
        return _lights_payload(results)

    @app.get("/webhooks/group/<name>")
    def group_states(name):
        states = services.lifx.get_group_states(name)
        if not states:
            return jsonify(success=False, status="not_found", message=f"No lights in group: {name}"), 404
        return jsonify(success=True, group=name, states=states), 200

    @app.post("/webhooks/lights/<action>")
    def control_all_lights(action):
        on = _parse_power(action)
        if on is None:
            return jsonify(success=False, message=f"Unknown action: {action}"), 400
        return _lights_payload(services.lifx.set_all_power(on))

    @app.get("/webhooks/lights")
    def all_light_states():
        return jsonify(success=True, states=services.lifx.get_all_states()), 200

    # ──────────────────────────────────────────────────────────────
    # Bundles
    # ──────────────────────────────────────────────────────────────

    def _bundle_payload(result, action: PowerAction, label: str):
        device = None
        if result.device is not None:
            device, _ = device_payload(result.device, action)
        else:
            device = {"success": False, "status": "error", "message": result.device_error}

        return jsonify(
            message=f"Office {label} sequence completed",
            device=device,
            lights=result.lights.to_dict(),
        ), 200

    @app.post("/webhooks/office/arrive")
    def arrive():
        logger.info("Office arrival sequence initiated")
        result = services.orchestrator.arrive(group=_request_param("group"))
        return _bundle_payload(result, PowerAction.WAKE, "arrival")

    @app.post("/webhooks/office/leave")
    def leave():
        logger.info("Office departure sequence initiated")
        action = PowerAction.SHUTDOWN if _request_param("shutdown") in (True, "true", "1") else PowerAction.SUSPEND
        result = services.orchestrator.leave(group=_request_param("group"), action=action)
        return _bundle_payload(result, action, "departure")

    return app
