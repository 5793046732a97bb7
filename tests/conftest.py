"""Shared fixtures: an in-memory Nanoleaf fixture and UDP sender."""

import copy
from typing import Any, Dict, List, Optional

import pytest

from nanoleaf_ext import DeviceConfig, NanoleafDevice, RestResponse


def panel(panel_id: int, x: int, y: int, shape_type: int = 2) -> Dict[str, Any]:
    return {"panelId": panel_id, "x": x, "y": y, "o": 0, "shapeType": shape_type}


def make_layout(panels: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"numPanels": len(panels), "sideLength": 100, "positionData": panels}


# 3x3 grid of squares plus a power supply and a shapes controller
GRID_LAYOUT = make_layout([
    panel(11, 0, 200), panel(12, 100, 200), panel(13, 200, 200),
    panel(21, 0, 100), panel(22, 100, 100), panel(23, 200, 100),
    panel(31, 0, 0), panel(32, 100, 0),
    panel(90, 300, 0, shape_type=5),
    panel(91, 300, 100, shape_type=12),
])

DYNAMIC_DEFINITION = {
    "animType": "random",
    "colorType": "HSB",
    "palette": [{"hue": 0, "saturation": 100, "brightness": 100}],
    "animName": "*Dynamic*",
}


class FakeFixture:
    """
    Duck-typed NanoleafRestApi backed by an in-memory fixture.

    `failures` maps (method, path) to a RestResponse returned instead of the
    normal result.
    """

    def __init__(self, layout: Optional[Dict[str, Any]] = None, model: str = "NL29",
                 firmware: str = "5.1.0", token: str = "tok",
                 ext_control_body: Any = None):
        self.host = "192.168.1.50"
        self.layout = copy.deepcopy(layout if layout is not None else GRID_LAYOUT)
        self.model = model
        self.firmware = firmware
        self.token = token
        self.ext_control_body = ext_control_body
        self.state: Dict[str, Any] = {
            "on": {"value": False},
            "brightness": {"value": 40, "min": 0, "max": 100},
            "hue": {"value": 120, "min": 0, "max": 360},
            "sat": {"value": 80, "min": 0, "max": 100},
            "ct": {"value": 4000, "min": 1200, "max": 6500},
            "colorMode": "hs",
        }
        self.effect = "*Solid*"
        self.calls: List[tuple] = []
        self.failures: Dict[tuple, RestResponse] = {}
        self.closed = False

    def set_token(self, token: str):
        self.token = token

    def snapshot(self) -> Dict[str, Any]:
        return {
            "on": self.state["on"]["value"],
            "brightness": self.state["brightness"]["value"],
            "hue": self.state["hue"]["value"],
            "sat": self.state["sat"]["value"],
            "ct": self.state["ct"]["value"],
            "colorMode": self.state["colorMode"],
            "effect": self.effect,
        }

    def get(self, path: str = "") -> RestResponse:
        self.calls.append(("GET", path, None))
        if ("GET", path) in self.failures:
            return self.failures[("GET", path)]
        if path == "":
            return RestResponse(200, {
                "name": "Canvas 4A3B", "model": self.model, "firmwareVersion": self.firmware,
                "serialNo": "S19123", "manufacturer": "Nanoleaf",
                "state": copy.deepcopy(self.state),
                "panelLayout": {"layout": copy.deepcopy(self.layout)},
            })
        if path == "state":
            return RestResponse(200, copy.deepcopy(self.state))
        if path == "effects/select":
            return RestResponse(200, self.effect)
        if path == "panelLayout/layout":
            return RestResponse(200, copy.deepcopy(self.layout))
        return RestResponse(404, None, "HTTP 404 Not Found")

    def put(self, path: str, json_data: Optional[Dict] = None) -> RestResponse:
        self.calls.append(("PUT", path, copy.deepcopy(json_data)))
        if ("PUT", path) in self.failures:
            return self.failures[("PUT", path)]
        if path == "state":
            for key, entry in json_data.items():
                self.state[key]["value"] = entry["value"]
                if key in ("hue", "sat"):
                    self.state["colorMode"] = "hs"
                    self.effect = "*Solid*"
                elif key == "ct":
                    self.state["colorMode"] = "ct"
                    self.effect = "*Solid*"
            return RestResponse(204)
        if path == "effects":
            if "select" in json_data:
                self.effect = json_data["select"]
                self.state["colorMode"] = "effect"
                return RestResponse(204)
            write = json_data["write"]
            if write.get("animType") == "extControl":
                self.effect = "*ExtControl*"
                self.state["colorMode"] = "effect"
                return RestResponse(200 if self.ext_control_body else 204, self.ext_control_body)
            if write.get("command") == "request":
                return RestResponse(200, copy.deepcopy(DYNAMIC_DEFINITION))
            if write.get("command") == "display":
                self.effect = "*Dynamic*"
                self.state["colorMode"] = "effect"
                return RestResponse(204)
        if path == "identify":
            return RestResponse(204)
        return RestResponse(404, None, "HTTP 404 Not Found")

    def post(self, path: str, json_data: Optional[Dict] = None, with_token: bool = True) -> RestResponse:
        self.calls.append(("POST", path, copy.deepcopy(json_data)))
        return RestResponse(404, None, "HTTP 404 Not Found")

    def close(self):
        self.closed = True


class FakeUdp:
    """Records datagrams instead of sending them"""

    instances: List['FakeUdp'] = []

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self.packets: List[bytes] = []
        self.is_open = False
        self.send_ok = True
        FakeUdp.instances.append(self)

    def open(self) -> bool:
        self.is_open = True
        return True

    def send(self, packet: bytes) -> bool:
        self.packets.append(packet)
        return self.send_ok

    def close(self):
        self.is_open = False


@pytest.fixture
def fixture() -> FakeFixture:
    return FakeFixture()


@pytest.fixture
def config() -> DeviceConfig:
    return DeviceConfig(host="192.168.1.50", token="tok")


@pytest.fixture
def device(fixture, config) -> NanoleafDevice:
    FakeUdp.instances.clear()
    return NanoleafDevice(config, rest_api=fixture, udp_factory=FakeUdp)
