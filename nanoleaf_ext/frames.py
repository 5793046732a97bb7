"""
External control frame encoding.

v1: nPanels(u8), then per panel: panelId(u8) nFrames(u8=1) R G B W(u8=0) transition(u8)
v2: nPanels(u16), then per panel: panelId(u16) R G B W(u8=0) transition(u16)

All multi-byte fields are big-endian.
"""

import numbers
import struct
from typing import Sequence, Tuple, Callable, Dict

from .config import EXT_CONTROL_V1, EXT_CONTROL_V2
from .errors import ProtocolError

Color = Tuple[int, int, int]

_V1_HEADER = struct.Struct(">B")
_V1_PANEL = struct.Struct(">BBBBBBB")
_V2_HEADER = struct.Struct(">H")
_V2_PANEL = struct.Struct(">HBBBBH")


def _check_rgb(color: Color) -> Color:
    r, g, b = color
    for c in (r, g, b):
        if not isinstance(c, numbers.Integral):
            raise ProtocolError(f"Color components must be integers: {color!r}")
        if not 0 <= c <= 255:
            raise ProtocolError(f"Color component out of range: {color!r}")
    return r, g, b


def encode_v1(panel_ids: Sequence[int], colors: Sequence[Color], transition: int = 0) -> bytes:
    if len(panel_ids) > 0xFF:
        raise ProtocolError(f"v1 frames hold at most 255 panels, got {len(panel_ids)}")
    buf = bytearray(_V1_HEADER.pack(len(panel_ids)))
    for panel_id, color in zip(panel_ids, colors):
        if not 0 <= panel_id <= 0xFF:
            raise ProtocolError(f"Panel id {panel_id} does not fit a v1 frame")
        r, g, b = _check_rgb(color)
        buf += _V1_PANEL.pack(panel_id, 1, r, g, b, 0, transition)
    return bytes(buf)


def encode_v2(panel_ids: Sequence[int], colors: Sequence[Color], transition: int = 0) -> bytes:
    if len(panel_ids) > 0xFFFF:
        raise ProtocolError(f"Too many panels for a v2 frame: {len(panel_ids)}")
    buf = bytearray(_V2_HEADER.pack(len(panel_ids)))
    for panel_id, color in zip(panel_ids, colors):
        if not 0 <= panel_id <= 0xFFFF:
            raise ProtocolError(f"Panel id {panel_id} does not fit a v2 frame")
        r, g, b = _check_rgb(color)
        buf += _V2_PANEL.pack(panel_id, r, g, b, 0, transition)
    return bytes(buf)


ENCODERS: Dict[int, Callable[..., bytes]] = {
    EXT_CONTROL_V1: encode_v1,
    EXT_CONTROL_V2: encode_v2,
}


def encode_frame(version: int, panel_ids: Sequence[int], colors: Sequence[Color],
                 transition: int = 0) -> bytes:
    """
    Encode one datagram for the negotiated protocol version.

    Args:
        version: External control version (1 or 2)
        panel_ids: Panel ids in streaming order
        colors: One (r, g, b) per panel
        transition: Transition time in 100ms units

    Returns:
        Datagram bytes
    """
    if len(panel_ids) != len(colors):
        raise ProtocolError(f"{len(colors)} colors for {len(panel_ids)} panels")
    encoder = ENCODERS.get(version)
    if encoder is None:
        raise ProtocolError(f"Unsupported external control version {version}")
    try:
        return encoder(panel_ids, colors, transition)
    except struct.error as e:
        raise ProtocolError(f"Frame encoding failed: {e}")
