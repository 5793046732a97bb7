"""
UDP sender for external control streaming.

Fire-and-forget datagrams; a failed send is reported, never retried.
"""

import logging
import socket
from typing import Optional

try:
    import udi_interface
    LOGGER = udi_interface.LOGGER
except ImportError:
    LOGGER = logging.getLogger(__name__)


class UdpSender:
    """Sends datagrams to one host:port"""

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self._sock: Optional[socket.socket] = None

    @property
    def is_open(self) -> bool:
        return self._sock is not None

    def open(self) -> bool:
        if self._sock is not None:
            return True
        try:
            family = socket.AF_INET6 if ':' in self.host else socket.AF_INET
            self._sock = socket.socket(family, socket.SOCK_DGRAM)
            self._sock.setblocking(False)
        except OSError as e:
            LOGGER.error(f"Nanoleaf {self.host}: Cannot open UDP socket - {e}")
            self._sock = None
            return False
        LOGGER.debug(f"Nanoleaf {self.host}: UDP socket ready for port {self.port}")
        return True

    def send(self, packet: bytes) -> bool:
        if self._sock is None:
            LOGGER.warning(f"Nanoleaf {self.host}: UDP send on closed socket")
            return False
        try:
            self._sock.sendto(packet, (self.host, self.port))
        except OSError as e:
            LOGGER.warning(f"Nanoleaf {self.host}: UDP send failed - {e}")
            return False
        return True

    def close(self):
        if self._sock is not None:
            self._sock.close()
            self._sock = None
