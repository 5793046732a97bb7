"""
Nanoleaf Device Configuration

Holds the per-fixture configuration and protocol constants. Values may
arrive from a JSON file or from a key/value parameter store where every
value is a string, so parsing is lenient about types but strict about
required keys.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Tuple

from .errors import ConfigError

try:
    import udi_interface
    LOGGER = udi_interface.LOGGER
except ImportError:
    LOGGER = logging.getLogger(__name__)


# REST API
API_DEFAULT_PORT = 16021
API_BASE_PATH = "/api/v1"
API_ADD_USER = "new"
API_ROOT = ""
API_STATE = "state"
API_PANEL_LAYOUT = "panelLayout/layout"
API_EFFECTS = "effects"
API_EFFECT_SELECT = "effects/select"
API_IDENTIFY = "identify"
DEFAULT_TIMEOUT = 5.0

# External control (UDP streaming)
STREAM_CONTROL_DEFAULT_PORT = 60222
EXT_CONTROL_V1 = 1
EXT_CONTROL_V2 = 2

# Light Panels older than this firmware only speak protocol v1
MODEL_LIGHT_PANELS = "NL22"
LIGHT_PANELS_V2_MIN_FIRMWARE = (3, 2, 0)

# Discovery
DISCOVERY_SERVICE_TYPE = "_nanoleafapi._tcp.local."
DISCOVERY_TIMEOUT = 3.0

# Brightness range accepted by the fixture
BRIGHTNESS_MIN = 0
BRIGHTNESS_MAX = 100

_TRUE_STRINGS = ('true', '1', 'yes', 'on')
_FALSE_STRINGS = ('false', '0', 'no', 'off', '')


def parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ConfigError(f"Invalid boolean for '{key}': {value!r}")


def parse_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"Invalid integer for '{key}': {value!r}")
    try:
        return int(str(value).strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid integer for '{key}': {value!r}")


def parse_float(key: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid number for '{key}': {value!r}")


def parse_int_list(key: str, value: Any) -> Tuple[int, ...]:
    if isinstance(value, str):
        items = [v for v in value.split(',') if v.strip()]
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        raise ConfigError(f"Invalid list for '{key}': {value!r}")
    return tuple(parse_int(key, v) for v in items)


def require_params(params: Dict[str, Any], *keys: str) -> None:
    """
    Check that every required key is present and non-empty.

    Raises:
        ConfigError: naming the first missing key
    """
    if not isinstance(params, dict):
        raise ConfigError(f"Parameters must be an object, got {type(params).__name__}")
    for key in keys:
        value = params.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ConfigError(f"Missing required parameter '{key}'")


@dataclass(frozen=True)
class DeviceConfig:
    """Configuration of a single Nanoleaf fixture"""
    host: str
    port: int = API_DEFAULT_PORT
    token: str = ""
    top_down: bool = True
    left_right: bool = True
    brightness_overwrite: bool = False
    brightness: int = BRIGHTNESS_MAX
    hardware_led_count: int = 0
    restore_original_state: bool = True
    timeout: float = DEFAULT_TIMEOUT
    led_shape_types: Optional[Tuple[int, ...]] = field(default=None)

    def __post_init__(self):
        if not self.host:
            raise ConfigError("Missing required parameter 'host'")
        if not 0 < self.port < 65536:
            raise ConfigError(f"Invalid port: {self.port}")
        if not BRIGHTNESS_MIN <= self.brightness <= BRIGHTNESS_MAX:
            raise ConfigError(f"Brightness must be {BRIGHTNESS_MIN}-{BRIGHTNESS_MAX}, got {self.brightness}")
        if self.hardware_led_count < 0:
            raise ConfigError(f"Invalid hardwareLedCount: {self.hardware_led_count}")
        if self.timeout <= 0:
            raise ConfigError(f"Timeout must be positive, got {self.timeout}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DeviceConfig':
        """Create config from a JSON object or custom parameter dict"""
        require_params(data, 'host')

        kwargs: Dict[str, Any] = {'host': str(data['host']).strip()}
        if data.get('port') not in (None, ''):
            kwargs['port'] = parse_int('port', data['port'])
        if data.get('token') is not None:
            kwargs['token'] = str(data['token']).strip()
        if 'topDown' in data:
            kwargs['top_down'] = parse_bool('topDown', data['topDown'])
        if 'leftRight' in data:
            kwargs['left_right'] = parse_bool('leftRight', data['leftRight'])
        if 'brightnessControl' in data:
            kwargs['brightness_overwrite'] = parse_bool('brightnessControl', data['brightnessControl'])
        if 'brightness' in data:
            kwargs['brightness'] = parse_int('brightness', data['brightness'])
        if 'hardwareLedCount' in data:
            kwargs['hardware_led_count'] = parse_int('hardwareLedCount', data['hardwareLedCount'])
        if 'restoreOriginalState' in data:
            kwargs['restore_original_state'] = parse_bool('restoreOriginalState', data['restoreOriginalState'])
        if 'timeout' in data:
            kwargs['timeout'] = parse_float('timeout', data['timeout'])
        if data.get('ledShapeTypes') not in (None, ''):
            kwargs['led_shape_types'] = parse_int_list('ledShapeTypes', data['ledShapeTypes'])

        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Return the persisted (camelCase) form"""
        data = {
            'host': self.host,
            'port': self.port,
            'token': self.token,
            'topDown': self.top_down,
            'leftRight': self.left_right,
            'brightnessControl': self.brightness_overwrite,
            'brightness': self.brightness,
            'hardwareLedCount': self.hardware_led_count,
            'restoreOriginalState': self.restore_original_state,
            'timeout': self.timeout,
        }
        if self.led_shape_types is not None:
            data['ledShapeTypes'] = list(self.led_shape_types)
        return data


def load_config(path: str) -> DeviceConfig:
    """
    Load a device configuration from a JSON file.

    Args:
        path: File path

    Returns:
        DeviceConfig
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Cannot read config {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Config {path}: JSON object expected")

    # Accept either a bare device object or {"device": {...}}
    if isinstance(data.get('device'), dict):
        data = data['device']

    return DeviceConfig.from_dict(data)


def save_config(path: str, config: DeviceConfig) -> None:
    """Write a device configuration back to a JSON file"""
    with open(path, "w", encoding="utf-8") as f:
        json.dump({'device': config.to_dict()}, f, indent=2)
    LOGGER.info(f"Nanoleaf {config.host}: Configuration saved to {path}")
