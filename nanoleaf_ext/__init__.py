"""Nanoleaf External Control Library"""

from .config import DeviceConfig, load_config, save_config
from .device import LedDevice, NanoleafDevice
from .discovery import NanoleafDiscovery
from .errors import (
    NanoleafError, ConfigError, TransportError, AuthenticationError, AuthorizationDenied,
    NotFound, LayoutMismatch, ProtocolError, PreconditionError,
)
from .models import (
    ShapeType, PanelDescriptor, DeviceDetails, OriginalState, ExternalControlSession,
    FixtureDescriptor, LED_SHAPE_TYPES,
)
from .rest_api import NanoleafRestApi, RestResponse
from .udp import UdpSender

__version__ = '1.0.0'

__all__ = [
    'DeviceConfig', 'load_config', 'save_config',
    'LedDevice', 'NanoleafDevice', 'NanoleafDiscovery',
    'NanoleafError', 'ConfigError', 'TransportError', 'AuthenticationError',
    'AuthorizationDenied', 'NotFound', 'LayoutMismatch', 'ProtocolError', 'PreconditionError',
    'ShapeType', 'PanelDescriptor', 'DeviceDetails', 'OriginalState', 'ExternalControlSession',
    'FixtureDescriptor', 'LED_SHAPE_TYPES',
    'NanoleafRestApi', 'RestResponse', 'UdpSender',
]
