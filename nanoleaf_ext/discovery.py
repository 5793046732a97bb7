"""
Nanoleaf Discovery

Finds Nanoleaf fixtures on the local network via mDNS (Zeroconf).
Fixtures advertise the _nanoleafapi._tcp service with TXT records
'md' (model), 'srcvers' (firmware) and 'id' (device id).
"""

import logging
import threading
import time
from typing import Optional, List

from zeroconf import Error as ZeroconfError
from zeroconf import ServiceBrowser, ServiceInfo, ServiceListener, Zeroconf

from .config import API_DEFAULT_PORT, DISCOVERY_SERVICE_TYPE, DISCOVERY_TIMEOUT
from .models import FixtureDescriptor

try:
    import udi_interface
    LOGGER = udi_interface.LOGGER
except ImportError:
    LOGGER = logging.getLogger(__name__)


def _txt(info: ServiceInfo, key: str) -> str:
    value = (info.properties or {}).get(key.encode())
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='replace')
    return ''


def fixture_from_service_info(info: Optional[ServiceInfo], service_type: str,
                              name: str) -> Optional[FixtureDescriptor]:
    """
    Build a FixtureDescriptor from a resolved service.

    Returns:
        FixtureDescriptor, or None when the record has no usable address
    """
    if info is None:
        return None

    addresses = info.parsed_addresses()
    if not addresses:
        return None

    suffix = f".{service_type}"
    device_name = name[:-len(suffix)] if name.endswith(suffix) else name

    return FixtureDescriptor(
        ip=addresses[0],
        port=info.port or API_DEFAULT_PORT,
        name=device_name,
        hostname=(info.server or '').rstrip('.'),
        model=_txt(info, 'md'),
        firmware_version=_txt(info, 'srcvers'),
        device_id=_txt(info, 'id'),
    )


class NanoleafListener(ServiceListener):
    """Collects fixtures as the browser reports them"""

    def __init__(self, service_type: str):
        self.service_type = service_type
        self.start_time = time.time()
        self._lock = threading.Lock()
        self._devices: List[FixtureDescriptor] = []

    @property
    def devices(self) -> List[FixtureDescriptor]:
        with self._lock:
            return list(self._devices)

    def add_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        try:
            device = fixture_from_service_info(zc.get_service_info(type_, name), self.service_type, name)
        except (ZeroconfError, ValueError, UnicodeError) as e:
            LOGGER.debug(f"mDNS service info error for {name}: {e}")
            return

        if device is None:
            LOGGER.debug(f"mDNS: skipping {name}, no address")
            return

        elapsed = time.time() - self.start_time
        with self._lock:
            if not any(d.ip == device.ip for d in self._devices):
                self._devices.append(device)
                LOGGER.debug(f"mDNS found: {device.name} at {device.ip} ({elapsed:.2f}s)")

    def update_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        pass

    def remove_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        pass


class NanoleafDiscovery:
    """
    Discovery for Nanoleaf fixtures.

    The service type and listen window are fixed per instance.
    """

    def __init__(self, service_type: str = DISCOVERY_SERVICE_TYPE,
                 timeout: float = DISCOVERY_TIMEOUT):
        self.service_type = service_type
        self.timeout = timeout

    def discover(self, timeout: Optional[float] = None) -> List[FixtureDescriptor]:
        """
        Browse for fixtures for a bounded listen window.

        Args:
            timeout: Listen window in seconds, instance default if None

        Returns:
            Fixtures found; empty list if none answered or mDNS is unavailable
        """
        window = self.timeout if timeout is None else timeout
        LOGGER.info(f"Nanoleaf discovery started ({self.service_type}, {window:.1f}s)")

        listener = NanoleafListener(self.service_type)
        try:
            zeroconf = Zeroconf()
        except OSError as e:
            LOGGER.warning(f"mDNS discovery unavailable: {e}")
            return []

        try:
            browser = ServiceBrowser(zeroconf, self.service_type, listener)
            try:
                time.sleep(window)
            finally:
                browser.cancel()
        except (OSError, ZeroconfError) as e:
            LOGGER.warning(f"mDNS discovery error: {e}")
        finally:
            zeroconf.close()

        devices = listener.devices
        LOGGER.info(f"Nanoleaf discovery complete: {len(devices)} device(s)")
        for d in devices:
            LOGGER.info(f"  - {d.name} ({d.ip}:{d.port}) {d.model} {d.firmware_version}")
        return devices
