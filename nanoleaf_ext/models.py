"""
Nanoleaf Data Models

Typed records for the fixture's panel topology, device details,
pre-streaming state snapshot and negotiated streaming session.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional, Dict, Any, FrozenSet


class ShapeType(IntEnum):
    """
    Firmware panel shape-type codes.

    Code 0 is reused across product generations: Light Panels triangles and
    the later HD light strip both report 0, so HD_LIGHT_STRIP is an alias
    of TRIANGLE. Both are LED-bearing, so classification is unaffected.
    """
    TRIANGLE = 0
    HD_LIGHT_STRIP = 0
    RHYTHM = 1
    SQUARE = 2
    CONTROL_SQUARE_PRIMARY = 3
    CONTROL_SQUARE_PASSIVE = 4
    POWER_SUPPLY = 5
    HEXAGON_SHAPES = 7
    TRIANGLE_SHAPES = 8
    MINI_TRIANGLE_SHAPES = 9
    SHAPES_CONTROLLER = 12
    ELEMENTS_HEXAGONS = 14
    ELEMENTS_HEXAGONS_CORNER = 15
    LINES_CONNECTOR = 16
    LIGHT_LINES = 17
    LIGHT_LINES_SINGLE_ZONE = 18
    CONTROLLER_CAP = 19
    POWER_CONNECTOR = 20
    NL_4D_LIGHTSTRIP = 29
    SKYLIGHT_PANEL = 30
    SKYLIGHT_CONTROLLER_PRIMARY = 31
    SKYLIGHT_CONTROLLER_PASSIVE = 32


# Shape types carrying LEDs, current firmware catalogue
LED_SHAPE_TYPES: FrozenSet[int] = frozenset({
    ShapeType.TRIANGLE,
    ShapeType.SQUARE,
    ShapeType.CONTROL_SQUARE_PRIMARY,
    ShapeType.CONTROL_SQUARE_PASSIVE,
    ShapeType.HEXAGON_SHAPES,
    ShapeType.TRIANGLE_SHAPES,
    ShapeType.MINI_TRIANGLE_SHAPES,
    ShapeType.ELEMENTS_HEXAGONS,
    ShapeType.ELEMENTS_HEXAGONS_CORNER,
    ShapeType.LIGHT_LINES,
    ShapeType.LIGHT_LINES_SINGLE_ZONE,
    ShapeType.NL_4D_LIGHTSTRIP,
    ShapeType.SKYLIGHT_PANEL,
})


@dataclass(frozen=True)
class PanelDescriptor:
    """One physical panel from the fixture's layout"""
    panel_id: int
    shape_type: int
    x: int = 0
    y: int = 0
    orientation: int = 0

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'PanelDescriptor':
        """Create panel from a positionData entry"""
        return cls(
            panel_id=int(data['panelId']),
            shape_type=int(data['shapeType']),
            x=int(data.get('x', 0)),
            y=int(data.get('y', 0)),
            orientation=int(data.get('o', 0)),
        )

    @property
    def shape_name(self) -> str:
        try:
            return ShapeType(self.shape_type).name
        except ValueError:
            return f"UNKNOWN({self.shape_type})"


@dataclass
class DeviceDetails:
    """
    Nanoleaf device identification.

    ext_control_version is 0 until open() negotiated external control.
    """
    name: str = ""
    model: str = ""
    firmware_version: str = ""
    serial_number: str = ""
    manufacturer: str = ""
    ext_control_version: int = 0

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'DeviceDetails':
        """Create details from the root resource"""
        return cls(
            name=data.get('name', ''),
            model=data.get('model', ''),
            firmware_version=data.get('firmwareVersion', ''),
            serial_number=data.get('serialNo', ''),
            manufacturer=data.get('manufacturer', ''),
        )

    @property
    def firmware_tuple(self):
        """Firmware version as a comparable tuple, unparsable parts as 0"""
        parts = []
        for part in self.firmware_version.split('.'):
            digits = ''.join(ch for ch in part if ch.isdigit())
            parts.append(int(digits) if digits else 0)
        while len(parts) < 3:
            parts.append(0)
        return tuple(parts)


def _state_value(state: Dict[str, Any], key: str) -> Optional[Any]:
    entry = state.get(key)
    if isinstance(entry, dict):
        return entry.get('value')
    return entry


@dataclass
class OriginalState:
    """
    Fixture state captured before streaming.

    Fields are None when the fixture did not report them; restore skips
    those fields.
    """
    is_on: Optional[bool] = None
    color_mode: Optional[str] = None
    hue: Optional[int] = None
    saturation: Optional[int] = None
    color_temperature: Optional[int] = None
    brightness: Optional[int] = None
    effect: Optional[str] = None
    is_dynamic_effect: bool = False
    dynamic_effect: Optional[Dict[str, Any]] = field(default=None)

    @classmethod
    def from_json(cls, state: Dict[str, Any], effect: Optional[str] = None) -> 'OriginalState':
        """Create snapshot from the 'state' resource and the selected effect"""
        return cls(
            is_on=_state_value(state, 'on'),
            color_mode=state.get('colorMode'),
            hue=_state_value(state, 'hue'),
            saturation=_state_value(state, 'sat'),
            color_temperature=_state_value(state, 'ct'),
            brightness=_state_value(state, 'brightness'),
            effect=effect,
        )


@dataclass(frozen=True)
class ExternalControlSession:
    """Negotiated UDP streaming endpoint"""
    host: str
    port: int
    version: int


@dataclass
class FixtureDescriptor:
    """A fixture found by discovery"""
    ip: str
    port: int
    name: str
    hostname: str = ""
    model: str = ""
    firmware_version: str = ""
    device_id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ip': self.ip,
            'port': self.port,
            'name': self.name,
            'hostname': self.hostname,
            'model': self.model,
            'firmwareVersion': self.firmware_version,
            'id': self.device_id,
        }
