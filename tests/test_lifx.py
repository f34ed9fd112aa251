import json

import pytest
import requests
import responses

from office_control.errors import ConfigurationError
from office_control.lifx import LifxClient, Light, parse_lights


# ========
# FIXTURES
# ========

BASE_URL = "https://api.lifx.com/v1"

LIGHTS = [
    Light(id="d073d5000001", name="desk", group="office"),
    Light(id="d073d5000002", name="ceiling", group="office"),
    Light(id="d073d5000003", name="hallway", group="hall"),
]


def state_url(light_id: str) -> str:
    return f"{BASE_URL}/lights/id:{light_id}/state"


def ok_body(light_id: str) -> dict:
    return {"results": [{"id": light_id, "label": light_id, "status": "ok"}]}


@pytest.fixture
def client():
    return LifxClient(api_token="mock_token", lights=LIGHTS, api_base_url=BASE_URL)


# =======================
# TEST GROUP: Registry
# =======================
def test_registry_lookup(client):
    assert client.get_light("desk").id == "d073d5000001"
    assert client.get_light("garage") is None
    assert [light.name for light in client.lights_in_group("office")] == ["desk", "ceiling"]
    assert client.lights_in_group("basement") == []
    assert client.headers["Authorization"] == "Bearer mock_token"


def test_light_without_id_is_skipped():
    client = LifxClient(api_token="t", lights=[Light(id="", name="ghost"), LIGHTS[0]])

    assert [light.name for light in client.lights] == ["desk"]


@pytest.mark.parametrize(
    "raw, expected_names",
    [
        # ✅ Full definitions
        ('[{"id": "a1", "name": "desk", "group": "office"}]', ["desk"]),

        # ✅ Name falls back to id
        ('[{"id": "a1"}]', ["a1"]),

        # ✅ Empty / unset
        ("", []),
    ],
)
def test_parse_lights(raw, expected_names):
    assert [light.name for light in parse_lights(raw)] == expected_names


@pytest.mark.parametrize("raw", ["{not json", '{"id": "a1"}', '["a1"]'])
def test_parse_lights_invalid(raw):
    with pytest.raises(ConfigurationError):
        parse_lights(raw)


# ===========================
# TEST GROUP: Single Light
# ===========================
# Function: set_power_by_id()
# ---------------------------
@pytest.mark.parametrize(
    "status_code, body, expected_result",
    [
        # ✅ Multi-status, bulb confirmed
        (207, ok_body("d073d5000001"), True),

        # ❌ Multi-status, bulb offline
        (207, {"results": [{"id": "d073d5000001", "status": "offline"}]}, False),

        # ❌ Bad token
        (401, {"error": "Invalid token"}, False),

        # ❌ Vendor outage
        (503, {}, False),

        # ❌ Success code, body is not an object
        (200, [], False),

        # ❌ Success code, malformed per-bulb entry
        (207, {"results": ["ok"]}, False),
    ],
)
@responses.activate
def test_set_power_by_id(client, status_code, body, expected_result):
    responses.add(responses.PUT, state_url("d073d5000001"), json=body, status=status_code)

    assert client.set_power_by_id("d073d5000001", on=True) is expected_result

    sent = json.loads(responses.calls[0].request.body)
    assert sent == {"power": "on", "duration": 1.0}


@responses.activate
def test_set_power_network_error(client):
    responses.add(
        responses.PUT,
        state_url("d073d5000001"),
        body=requests.exceptions.ConnectionError("Boom"),
    )

    assert client.set_power_by_id("d073d5000001", on=False) is False


@responses.activate
def test_set_power_by_name(client):
    responses.add(responses.PUT, state_url("d073d5000002"), json=ok_body("d073d5000002"), status=207)

    assert client.set_power("ceiling", on=False, duration=3.0) is True
    assert client.set_power("garage", on=False) is False

    sent = json.loads(responses.calls[0].request.body)
    assert sent == {"power": "off", "duration": 3.0}
    assert len(responses.calls) == 1


# ===========================
# TEST GROUP: Fan-out
# ===========================
@responses.activate
def test_set_all_power_reports_each_light(client):
    """One light failing does not affect the others"""
    responses.add(responses.PUT, state_url("d073d5000001"), json=ok_body("d073d5000001"), status=207)
    responses.add(responses.PUT, state_url("d073d5000002"), status=500)
    responses.add(responses.PUT, state_url("d073d5000003"), json=ok_body("d073d5000003"), status=207)

    results = client.set_all_power(on=True)

    assert results == {"desk": True, "ceiling": False, "hallway": True}
    assert len(responses.calls) == 3


@responses.activate
def test_malformed_body_does_not_hide_other_lights(client):
    """A light answering with an unexpected body fails alone"""
    responses.add(responses.PUT, state_url("d073d5000001"), json=[], status=200)
    responses.add(responses.PUT, state_url("d073d5000002"), json=ok_body("d073d5000002"), status=207)
    responses.add(responses.PUT, state_url("d073d5000003"), json={"results": "oops"}, status=207)

    results = client.set_all_power(on=True)

    assert results == {"desk": False, "ceiling": True, "hallway": False}


@responses.activate
def test_set_group_power(client):
    responses.add(responses.PUT, state_url("d073d5000003"), json=ok_body("d073d5000003"), status=207)

    assert client.set_group_power("hall", on=True) == {"hallway": True}


@responses.activate
def test_set_group_power_unknown_group(client):
    assert client.set_group_power("basement", on=True) == {}
    assert len(responses.calls) == 0


# ===========================
# TEST GROUP: State Queries
# ===========================
@responses.activate
def test_get_state(client):
    responses.add(
        responses.GET,
        f"{BASE_URL}/lights/id:d073d5000001",
        json=[{"id": "d073d5000001", "power": "on", "brightness": 0.8}],
        status=200,
    )

    state = client.get_state("desk")

    assert state["power"] == "on"
    assert client.get_state("garage") is None


@responses.activate
def test_get_group_states_with_failure(client):
    responses.add(
        responses.GET,
        f"{BASE_URL}/lights/id:d073d5000001",
        json=[{"id": "d073d5000001", "power": "off"}],
        status=200,
    )
    responses.add(responses.GET, f"{BASE_URL}/lights/id:d073d5000002", status=404)

    states = client.get_group_states("office")

    assert states["desk"]["power"] == "off"
    assert states["ceiling"] is None
