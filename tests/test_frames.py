"""Tests for external control frame encoding."""

import pytest

from nanoleaf_ext import ProtocolError
from nanoleaf_ext.frames import encode_frame, encode_v1, encode_v2


class TestFrameV1:
    """Tests for the v1 layout."""

    def test_layout(self) -> None:
        """Test header and per-panel records."""
        packet = encode_v1([5, 7], [(255, 0, 10), (1, 2, 3)])
        assert packet == bytes([2, 5, 1, 255, 0, 10, 0, 0, 7, 1, 1, 2, 3, 0, 0])

    def test_panel_id_too_large(self) -> None:
        """Test that ids above 255 cannot be sent in v1."""
        with pytest.raises(ProtocolError, match="v1"):
            encode_v1([300], [(0, 0, 0)])


class TestFrameV2:
    """Tests for the v2 layout."""

    def test_layout(self) -> None:
        """Test big-endian header and per-panel records."""
        packet = encode_v2([5, 0x1234], [(255, 0, 10), (1, 2, 3)])
        assert packet == bytes([
            0, 2,
            0, 5, 255, 0, 10, 0, 0, 0,
            0x12, 0x34, 1, 2, 3, 0, 0, 0,
        ])

    def test_length(self) -> None:
        """Test the datagram size is 2 + 8 bytes per panel."""
        assert len(encode_v2(list(range(10)), [(0, 0, 0)] * 10)) == 82


class TestEncodeFrame:
    """Tests for version dispatch."""

    def test_versions_differ(self) -> None:
        """Test the same colors encode differently per version."""
        ids = [10, 20, 30]
        colors = [(255, 0, 0), (0, 255, 0), (0, 0, 255)]
        v1 = encode_frame(1, ids, colors)
        v2 = encode_frame(2, ids, colors)
        assert len(v1) == 1 + 7 * 3
        assert len(v2) == 2 + 8 * 3
        assert v1 != v2

    def test_unknown_version(self) -> None:
        """Test that an unsupported version is rejected."""
        with pytest.raises(ProtocolError, match="version 3"):
            encode_frame(3, [1], [(0, 0, 0)])

    def test_count_mismatch(self) -> None:
        """Test that colors and ids must pair up."""
        with pytest.raises(ProtocolError):
            encode_frame(2, [1, 2], [(0, 0, 0)])

    def test_color_out_of_range(self) -> None:
        """Test that components above 255 are rejected."""
        with pytest.raises(ProtocolError, match="out of range"):
            encode_frame(2, [1], [(256, 0, 0)])

    def test_float_component_rejected(self) -> None:
        """Test that non-integer components are rejected."""
        with pytest.raises(ProtocolError, match="integers"):
            encode_frame(2, [1], [(1.0, 0, 0)])
