"""Tests for the command-line tool."""

import json
from unittest.mock import patch

import nanoleaf_tool
from nanoleaf_ext import AuthorizationDenied, FixtureDescriptor


class TestTool:
    """Tests for nanoleaf_tool commands."""

    def test_rainbow(self) -> None:
        """Test one valid color per panel."""
        colors = nanoleaf_tool.rainbow(8, 0.25)
        assert len(colors) == 8
        assert all(0 <= c <= 255 for color in colors for c in color)

    def test_discover_prints_devices(self, capsys) -> None:
        """Test discovered fixtures are printed as JSON."""
        found = [FixtureDescriptor(ip="192.168.1.50", port=16021, name="Canvas", model="NL29")]
        with patch.object(nanoleaf_tool.NanoleafDevice, "discover", return_value=found):
            assert nanoleaf_tool.main(["discover", "--timeout", "1"]) == 0
        printed = json.loads(capsys.readouterr().out)
        assert printed[0]["ip"] == "192.168.1.50"

    def test_pair_writes_config(self, tmp_path) -> None:
        """Test a granted token is saved to the config file."""
        path = tmp_path / "nanoleaf.json"
        with patch.object(nanoleaf_tool.NanoleafDevice, "add_authorization",
                          return_value={"auth_token": "abc"}):
            assert nanoleaf_tool.main(["pair", "10.0.0.5", "--wait", "0", "--config", str(path)]) == 0
        assert json.loads(path.read_text())["device"]["token"] == "abc"

    def test_pair_denied(self) -> None:
        """Test a denied pairing gives a failing exit code."""
        with patch.object(nanoleaf_tool.NanoleafDevice, "add_authorization",
                          side_effect=AuthorizationDenied("not confirmed")):
            assert nanoleaf_tool.main(["pair", "10.0.0.5", "--wait", "0"]) == 1

    def test_missing_config_file(self, tmp_path) -> None:
        """Test an unreadable config file is a configuration error."""
        assert nanoleaf_tool.main(["test", str(tmp_path / "missing.json")]) == 2
