"""
Nanoleaf External Control Device

Drives a Nanoleaf fixture (Light Panels, Canvas, Shapes, Elements, Lines,
4D/Lightstrip) via the "external control" protocol: REST for control-plane
calls, UDP for per-frame colors.

Lifecycle:
    switch_on():  store_state() -> power_on() -> open()
    write():      one UDP datagram per color buffer
    switch_off(): restore_state() (or power_off()) -> close()

open() and write() return 0 on success and -1 on failure; the other
lifecycle calls return True/False. The cause of the last failure is kept
in last_error.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Optional, Dict, List, Any, Callable, Sequence

from .config import (
    DeviceConfig, require_params, parse_int, parse_float,
    API_DEFAULT_PORT, API_ADD_USER, API_ROOT, API_STATE, API_PANEL_LAYOUT,
    API_EFFECTS, API_EFFECT_SELECT, API_IDENTIFY, DEFAULT_TIMEOUT,
    STREAM_CONTROL_DEFAULT_PORT, EXT_CONTROL_V1, EXT_CONTROL_V2,
    MODEL_LIGHT_PANELS, LIGHT_PANELS_V2_MIN_FIRMWARE,
    DISCOVERY_SERVICE_TYPE, DISCOVERY_TIMEOUT,
)
from .discovery import NanoleafDiscovery
from .errors import (
    NanoleafError, AuthorizationDenied, TransportError, ProtocolError,
    PreconditionError, error_for_status,
)
from .frames import Color, encode_frame
from .layout import resolve_layout
from .models import (
    DeviceDetails, ExternalControlSession, FixtureDescriptor, OriginalState, PanelDescriptor,
)
from .rest_api import NanoleafRestApi, RestResponse
from .udp import UdpSender

try:
    import udi_interface
    LOGGER = udi_interface.LOGGER
except ImportError:
    LOGGER = logging.getLogger(__name__)


DYNAMIC_EFFECT = "*Dynamic*"
EXT_CONTROL_EFFECT = "*ExtControl*"
PAIRING_RETRY_INTERVAL = 1.0


def _check(response: RestResponse, what: str) -> Any:
    """Return the response body or raise the mapped error"""
    if response.is_error:
        raise error_for_status(response.status_code, f"{what}: {response.error_reason}")
    return response.body


class LedDevice(ABC):
    """
    Streaming LED device.

    Common capability set of every fixture family; subclasses provide the
    protocol-specific operations.
    """

    def __init__(self):
        self._is_ready = False
        self.last_error = ""

    @property
    def is_ready(self) -> bool:
        """True once open() completed and until close()"""
        return self._is_ready

    @abstractmethod
    def open(self) -> int:
        """Open the device, 0 on success, negative on failure"""

    @abstractmethod
    def write(self, colors: Sequence[Color]) -> int:
        """Send one frame, 0 on success, negative on failure"""

    @abstractmethod
    def power_on(self) -> bool:
        pass

    @abstractmethod
    def power_off(self) -> bool:
        pass

    @abstractmethod
    def store_state(self) -> bool:
        pass

    @abstractmethod
    def restore_state(self) -> bool:
        pass

    def close(self):
        self._is_ready = False

    def _set_error(self, message: str):
        self.last_error = message
        LOGGER.error(message)

    def __enter__(self) -> 'LedDevice':
        if self.open() < 0:
            raise NanoleafError(self.last_error)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class NanoleafDevice(LedDevice):
    """
    Nanoleaf fixture in external control mode.

    Owns its REST client, UDP sender, panel layout, device details and
    original-state snapshot. One instance per fixture, not thread-safe.
    """

    def __init__(self, config: DeviceConfig,
                 rest_api: Optional[NanoleafRestApi] = None,
                 udp_factory: Callable[[str, int], UdpSender] = UdpSender,
                 on_config_changed: Optional[Callable[[DeviceConfig], None]] = None):
        """
        Initialize the device.

        Args:
            config: Fixture configuration
            rest_api: REST client, built from config when None
            udp_factory: Builds the UDP sender for the negotiated endpoint
            on_config_changed: Called with the new config after a token was acquired
        """
        super().__init__()
        self.config = config
        self._rest_api = rest_api
        self._udp_factory = udp_factory
        self._udp: Optional[UdpSender] = None
        self._on_config_changed = on_config_changed

        self._details: Optional[DeviceDetails] = None
        self._layout: List[PanelDescriptor] = []
        self._panel_ids: tuple = ()
        self._session: Optional[ExternalControlSession] = None
        self._original_state: Optional[OriginalState] = None
        self.external_control_response: Optional[RestResponse] = None

    @property
    def host(self) -> str:
        return self.config.host

    @property
    def details(self) -> Optional[DeviceDetails]:
        return self._details

    @property
    def layout(self) -> List[PanelDescriptor]:
        return list(self._layout)

    @property
    def led_count(self) -> int:
        return len(self._layout)

    @property
    def session(self) -> Optional[ExternalControlSession]:
        return self._session

    @property
    def original_state(self) -> Optional[OriginalState]:
        return self._original_state

    # ------------------------------------------------------------------
    # Session controller
    # ------------------------------------------------------------------

    def open_rest_api(self) -> NanoleafRestApi:
        """Create the REST client if not yet done"""
        if self._rest_api is None:
            self._rest_api = NanoleafRestApi(self.config.host, self.config.port,
                                             self.config.token, self.config.timeout)
        return self._rest_api

    def open(self) -> int:
        """
        Negotiate a streaming session.

        Sequence: REST access (acquiring a token if none is configured),
        device details, LED layout, external control mode, UDP socket.
        The device is ready only if every step succeeds.

        Returns:
            0 on success, -1 on failure (cause in last_error)
        """
        self._is_ready = False
        self._session = None
        LOGGER.info(f"Nanoleaf {self.host}: Opening device")

        try:
            api = self.open_rest_api()
            if not api.token:
                self._acquire_token()
            self._details = self._fetch_details()
            self.init_leds_configuration()
            session = self.change_to_external_control_mode()
        except NanoleafError as e:
            self._set_error(f"Nanoleaf {self.host}: Failed to open device - {type(e).__name__}: {e}")
            return -1

        if self._udp is not None:
            self._udp.close()
        self._udp = self._udp_factory(session.host, session.port)
        if not self._udp.open():
            self._set_error(f"Nanoleaf {self.host}: Failed to open UDP socket to {session.host}:{session.port}")
            return -1

        self._is_ready = True
        self.last_error = ""
        LOGGER.info(f"Nanoleaf {self.host}: Ready, {self.led_count} panels, "
                    f"protocol v{session.version} on port {session.port}")
        return 0

    def _acquire_token(self):
        LOGGER.info(f"Nanoleaf {self.host}: No token configured, requesting authorization")
        result = self.add_authorization({'host': self.config.host, 'port': self.config.port,
                                         'timeout': self.config.timeout})
        token = result['auth_token']
        self._rest_api.set_token(token)
        self.config = replace(self.config, token=token)
        if self._on_config_changed is not None:
            self._on_config_changed(self.config)

    def _fetch_details(self) -> DeviceDetails:
        body = _check(self._rest_api.get(API_ROOT), "Get device details")
        if not isinstance(body, dict):
            raise ProtocolError("Device details are not a JSON object")
        details = DeviceDetails.from_json(body)
        LOGGER.info(f"Nanoleaf {self.host}: {details.name} model {details.model}, "
                    f"firmware {details.firmware_version}")
        return details

    def init_leds_configuration(self) -> List[PanelDescriptor]:
        """
        Fetch the panel layout and derive the LED order.

        Returns:
            Ordered LED panels

        Raises:
            LayoutMismatch: no LED panels or count differs from configuration
        """
        layout = _check(self._rest_api.get(API_PANEL_LAYOUT), "Get panel layout")
        panels = resolve_layout(layout,
                                top_down=self.config.top_down,
                                left_right=self.config.left_right,
                                led_shape_types=self.config.led_shape_types,
                                expected_count=self.config.hardware_led_count)
        self._layout = panels
        self._panel_ids = tuple(p.panel_id for p in panels)
        LOGGER.info(f"Nanoleaf {self.host}: {len(panels)} LED panels, order {list(self._panel_ids)}")
        return panels

    def preferred_control_version(self) -> int:
        """Protocol version to request, v1 for older Light Panels firmware"""
        details = self._details
        if details and details.model == MODEL_LIGHT_PANELS \
                and details.firmware_tuple < LIGHT_PANELS_V2_MIN_FIRMWARE:
            return EXT_CONTROL_V1
        return EXT_CONTROL_V2

    def change_to_external_control_mode(self) -> ExternalControlSession:
        """
        Switch the fixture to external control (UDP) mode.

        The raw response is kept in external_control_response.

        Returns:
            Negotiated session
        """
        version = self.preferred_control_version()
        body = {
            "write": {
                "command": "display",
                "animType": "extControl",
                "extControlVersion": f"v{version}",
            }
        }
        response = self._rest_api.put(API_EFFECTS, body)
        self.external_control_response = response
        data = _check(response, "Change to external control mode")

        host = self.config.host
        port = STREAM_CONTROL_DEFAULT_PORT
        if isinstance(data, dict):
            version = self._parse_version(data.get('extControlVersion'), version)
            protocol = str(data.get('streamControlProtocol', 'udp')).lower()
            if protocol != 'udp':
                raise ProtocolError(f"Unsupported stream protocol '{protocol}'")
            if 'streamControlPort' in data:
                try:
                    port = int(data['streamControlPort'])
                except (TypeError, ValueError):
                    raise ProtocolError(f"Invalid stream port {data['streamControlPort']!r}")
            host = data.get('streamControlIpAddr') or host
        elif version == EXT_CONTROL_V1:
            raise ProtocolError("External control v1 response carries no stream endpoint")

        self._session = ExternalControlSession(host=host, port=port, version=version)
        if self._details is not None:
            self._details.ext_control_version = version
        LOGGER.info(f"Nanoleaf {self.host}: External control v{version} at {host}:{port}")
        return self._session

    @staticmethod
    def _parse_version(value: Any, default: int) -> int:
        if value is None:
            return default
        text = str(value).strip().lower().lstrip('v')
        if text == str(EXT_CONTROL_V1):
            return EXT_CONTROL_V1
        if text == str(EXT_CONTROL_V2):
            return EXT_CONTROL_V2
        raise ProtocolError(f"Unknown external control version {value!r}")

    def write(self, colors: Sequence[Color]) -> int:
        """
        Send one color per LED panel, in layout order.

        Returns:
            0 on success, -1 on failure; the session stays open either way
        """
        if not self._is_ready or self._session is None:
            self.last_error = str(PreconditionError("write() before successful open()"))
            LOGGER.warning(f"Nanoleaf {self.host}: {self.last_error}")
            return -1

        if len(colors) != len(self._panel_ids):
            self.last_error = str(PreconditionError(
                f"Got {len(colors)} colors for {len(self._panel_ids)} panels"))
            LOGGER.warning(f"Nanoleaf {self.host}: {self.last_error}")
            return -1

        try:
            packet = encode_frame(self._session.version, self._panel_ids, colors)
        except (ProtocolError, TypeError, ValueError) as e:
            self.last_error = f"Frame encoding failed - {e}"
            LOGGER.warning(f"Nanoleaf {self.host}: {self.last_error}")
            return -1

        if not self._udp.send(packet):
            self.last_error = "UDP send failed"
            return -1

        LOGGER.debug(f"Nanoleaf {self.host}: Sent {len(packet)} bytes")
        return 0

    def close(self):
        """Restore the pre-streaming state if configured and release transports"""
        if self._original_state is not None and self.config.restore_original_state:
            self.restore_state()
        if self._udp is not None:
            self._udp.close()
            self._udp = None
        if self._rest_api is not None:
            self._rest_api.close()
        self._session = None
        super().close()

    def switch_on(self) -> bool:
        """Store state, power on and start streaming"""
        if self.config.restore_original_state and self._original_state is None:
            if not self.store_state():
                LOGGER.warning(f"Nanoleaf {self.host}: Continuing without state snapshot")
        if not self.power_on():
            return False
        if not self._is_ready:
            return self.open() == 0

        # Powering on may reselect the last effect
        try:
            self.change_to_external_control_mode()
        except NanoleafError as e:
            self.last_error = f"Re-enter external control failed - {e}"
            LOGGER.warning(f"Nanoleaf {self.host}: {self.last_error}")
            return False
        return True

    def switch_off(self) -> bool:
        """Stop streaming and return the fixture to its previous state"""
        if self._original_state is not None and self.config.restore_original_state:
            ok = self.restore_state()
        else:
            ok = self.power_off()
        self.close()
        return ok

    # ------------------------------------------------------------------
    # Power and state guardian
    # ------------------------------------------------------------------

    def _put_state(self, body: Dict[str, Any], what: str) -> bool:
        response = self.open_rest_api().put(API_STATE, body)
        if response.is_error:
            self.last_error = f"{what} failed - {response.error_reason}"
            LOGGER.warning(f"Nanoleaf {self.host}: {self.last_error}")
            return False
        return True

    def power_on(self) -> bool:
        """Turn the fixture on, applying the brightness overwrite if configured"""
        body: Dict[str, Any] = {"on": {"value": True}}
        if self.config.brightness_overwrite:
            body["brightness"] = {"value": self.config.brightness}
        LOGGER.info(f"Nanoleaf {self.host}: Power on")
        return self._put_state(body, "Power on")

    def power_off(self) -> bool:
        LOGGER.info(f"Nanoleaf {self.host}: Power off")
        return self._put_state({"on": {"value": False}}, "Power off")

    def store_state(self) -> bool:
        """
        Snapshot power, color mode, hue/sat/ct/brightness and effect.

        Must be paired with restore_state() and called before open(); a
        second call while a snapshot is held, or a call while streaming,
        fails.
        """
        if self._session is not None:
            self.last_error = str(PreconditionError("Cannot store state while streaming"))
            LOGGER.warning(f"Nanoleaf {self.host}: {self.last_error}")
            return False
        if self._original_state is not None:
            self.last_error = str(PreconditionError("State already stored, restore it first"))
            LOGGER.warning(f"Nanoleaf {self.host}: {self.last_error}")
            return False

        api = self.open_rest_api()
        try:
            state = _check(api.get(API_STATE), "Get state")
            if not isinstance(state, dict):
                raise ProtocolError("State is not a JSON object")
            effect = _check(api.get(API_EFFECT_SELECT), "Get selected effect")
        except NanoleafError as e:
            self.last_error = f"Store state failed - {e}"
            LOGGER.warning(f"Nanoleaf {self.host}: {self.last_error}")
            return False

        snapshot = OriginalState.from_json(state, effect if isinstance(effect, str) else None)

        if snapshot.effect == DYNAMIC_EFFECT:
            request = {"write": {"command": "request", "animName": DYNAMIC_EFFECT}}
            response = api.put(API_EFFECTS, request)
            if not response.is_error and isinstance(response.body, dict):
                snapshot.is_dynamic_effect = True
                snapshot.dynamic_effect = response.body
            else:
                LOGGER.warning(f"Nanoleaf {self.host}: Could not capture dynamic effect "
                               f"- {response.error_reason or 'no definition returned'}")

        self._original_state = snapshot
        LOGGER.info(f"Nanoleaf {self.host}: Stored state {snapshot}")
        return True

    def restore_state(self) -> bool:
        """
        Re-apply the stored snapshot field by field, power state last.

        Every field is attempted even if an earlier one fails. The snapshot
        is consumed either way.
        """
        snapshot = self._original_state
        if snapshot is None:
            self.last_error = "No stored state to restore"
            LOGGER.warning(f"Nanoleaf {self.host}: {self.last_error}")
            return False
        self._original_state = None

        api = self.open_rest_api()
        results = []

        if snapshot.color_mode == "hs":
            if snapshot.hue is not None:
                results.append(self._put_state({"hue": {"value": snapshot.hue}}, "Restore hue"))
            if snapshot.saturation is not None:
                results.append(self._put_state({"sat": {"value": snapshot.saturation}}, "Restore saturation"))
        elif snapshot.color_mode == "ct":
            if snapshot.color_temperature is not None:
                results.append(self._put_state({"ct": {"value": snapshot.color_temperature}},
                                               "Restore color temperature"))
        elif snapshot.is_dynamic_effect and snapshot.dynamic_effect:
            effect = dict(snapshot.dynamic_effect)
            effect["command"] = "display"
            response = api.put(API_EFFECTS, {"write": effect})
            results.append(not response.is_error)
            if response.is_error:
                LOGGER.warning(f"Nanoleaf {self.host}: Restore dynamic effect failed - {response.error_reason}")
        elif snapshot.effect and snapshot.effect not in (EXT_CONTROL_EFFECT, DYNAMIC_EFFECT):
            response = api.put(API_EFFECTS, {"select": snapshot.effect})
            results.append(not response.is_error)
            if response.is_error:
                LOGGER.warning(f"Nanoleaf {self.host}: Restore effect '{snapshot.effect}' failed "
                               f"- {response.error_reason}")

        if snapshot.brightness is not None:
            results.append(self._put_state({"brightness": {"value": snapshot.brightness}}, "Restore brightness"))

        if snapshot.is_on is not None:
            results.append(self._put_state({"on": {"value": snapshot.is_on}}, "Restore power"))

        ok = all(results)
        if ok:
            LOGGER.info(f"Nanoleaf {self.host}: Restored original state")
        else:
            self.last_error = "Original state only partially restored"
            LOGGER.warning(f"Nanoleaf {self.host}: {self.last_error}")
        return ok

    # ------------------------------------------------------------------
    # Configuration-time operations (no open device needed)
    # ------------------------------------------------------------------

    @staticmethod
    def _api_from_params(params: Dict[str, Any], with_token: bool = True) -> NanoleafRestApi:
        require_params(params, 'host', *(('token',) if with_token else ()))
        port = parse_int('port', params['port']) if params.get('port') else API_DEFAULT_PORT
        timeout = parse_float('timeout', params['timeout']) if params.get('timeout') else DEFAULT_TIMEOUT
        token = str(params['token']).strip() if with_token else ''
        return NanoleafRestApi(str(params['host']).strip(), port, token, timeout)

    @staticmethod
    def discover(params: Optional[Dict[str, Any]] = None) -> List[FixtureDescriptor]:
        """
        Discover Nanoleaf fixtures on the local network.

        Args:
            params: Optional 'timeout' (seconds) and 'serviceType' overrides

        Returns:
            Fixtures found, empty list if none

        Raises:
            ConfigError: unparsable timeout
        """
        params = params or {}
        discovery = NanoleafDiscovery(
            service_type=params.get('serviceType') or DISCOVERY_SERVICE_TYPE,
            timeout=parse_float('timeout', params['timeout']) if params.get('timeout') else DISCOVERY_TIMEOUT,
        )
        return discovery.discover()

    @classmethod
    def get_properties(cls, params: Dict[str, Any]) -> Any:
        """
        Query the fixture's resource tree.

        Args:
            params: 'host', 'token', optional 'filter' path (root if empty)

        Returns:
            JSON resource tree or the filtered subtree

        Raises:
            AuthenticationError, NotFound, TransportError
        """
        api = cls._api_from_params(params)
        path = str(params.get('filter') or '').strip('/')
        try:
            return _check(api.get(path), f"Get properties '/{path}'")
        finally:
            api.close()

    @classmethod
    def identify(cls, params: Dict[str, Any]) -> bool:
        """
        Flash the fixture so an operator can spot it.

        Args:
            params: 'host' and 'token'

        Returns:
            True if the fixture acknowledged
        """
        api = cls._api_from_params(params)
        try:
            response = api.put(API_IDENTIFY)
        finally:
            api.close()
        if response.is_error:
            LOGGER.warning(f"Nanoleaf {api.host}: Identify failed - {response.error_reason}")
            return False
        LOGGER.info(f"Nanoleaf {api.host}: Identify sent")
        return True

    @classmethod
    def add_authorization(cls, params: Dict[str, Any]) -> Dict[str, str]:
        """
        Request a new API token.

        The fixture only grants one while in pairing mode (power button held
        5-7 seconds). With 'wait' > 0 the request is retried until pairing
        is confirmed or the wait elapses.

        Args:
            params: 'host', optional 'port', 'timeout', 'wait' (seconds)

        Returns:
            {"auth_token": token}

        Raises:
            AuthorizationDenied: pairing not confirmed in time
            TransportError: host unreachable
            ProtocolError: no token in the reply
        """
        api = cls._api_from_params(params, with_token=False)
        wait = parse_float('wait', params['wait']) if params.get('wait') else 0.0
        deadline = time.monotonic() + wait

        try:
            while True:
                response = api.post(API_ADD_USER, with_token=False)
                if response.status_code in (401, 403):
                    if time.monotonic() >= deadline:
                        raise AuthorizationDenied(
                            f"Nanoleaf {api.host}: Pairing not confirmed, hold the power button "
                            f"until the LEDs flash, then retry")
                    time.sleep(PAIRING_RETRY_INTERVAL)
                    continue
                if response.status_code is None:
                    raise TransportError(f"Nanoleaf {api.host}: {response.error_reason}")
                body = _check(response, "Add authorization")
                break
        finally:
            api.close()

        token = body.get('auth_token') if isinstance(body, dict) else None
        if not token:
            raise ProtocolError(f"Nanoleaf {api.host}: No auth_token in reply")
        LOGGER.info(f"Nanoleaf {api.host}: New authorization token granted")
        return {'auth_token': token}
