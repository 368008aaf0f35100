"""Tests for the MCP tool layer."""

from __future__ import annotations

import json
import sys
from unittest.mock import MagicMock, patch

import pytest

from smart_road_radar_mcp.errors import CommandTimeout, DeviceFailure
from smart_road_radar_mcp.models.targets import TargetRecord
from smart_road_radar_mcp.protocol.commands import Command, DataFrequency, Status


def _get_server_module():
    """Import server module with FastMCP mocked to avoid init issues."""
    mock_fastmcp_cls = MagicMock()
    mock_fastmcp_instance = MagicMock()
    # Make the @mcp.tool() decorator a no-op that returns the function unchanged
    mock_fastmcp_instance.tool.return_value = lambda fn: fn
    mock_fastmcp_instance.resource.return_value = lambda fn: fn
    mock_fastmcp_instance.prompt.return_value = lambda fn: fn
    mock_fastmcp_cls.return_value = mock_fastmcp_instance

    with patch.dict(sys.modules, {}):
        with patch("mcp.server.fastmcp.FastMCP", mock_fastmcp_cls):
            # Remove cached server module so it re-imports with our mock
            sys.modules.pop("smart_road_radar_mcp.server", None)
            import smart_road_radar_mcp.server as server_mod

    return server_mod


@pytest.fixture
def server(tmp_path, monkeypatch):
    monkeypatch.setenv("SMART_ROAD_RADAR_CONFIG", str(tmp_path / "absent.json"))
    server_mod = _get_server_module()
    yield server_mod
    server_mod.disconnect()


def test_tools_require_connection(server):
    with pytest.raises(RuntimeError, match="Not connected"):
        server.get_parameters()


def test_connect_simulated(server):
    """Simulated connect reports the simulator's firmware."""
    result = server.connect(simulate=True)
    assert result == {"connected": True, "port": "simulator", "firmware": "V255.255.255"}
    assert server.connect(simulate=True)["message"] == "Already connected"

    status = json.loads(server.resource_device_status())
    assert status["connected"] is True
    assert status["simulated"] is True
    assert status["attempts"] == 10


def test_connect_bad_serial_port(server):
    result = server.connect(port="/dev/does-not-exist-radar")
    assert result["connected"] is False
    assert "error" in result


def test_parameters_through_simulator(server):
    server.connect(simulate=True)
    result = server.set_parameters(max_distance=25.0, min_speed=1.0)
    assert result["stored"] is True
    assert server.get_parameters()["parameters"]["max_distance"] == 25.0
    assert server.get_parameters()["parameters"]["min_speed"] == 1.0


def test_set_parameters_validates_ranges(server):
    server.connect(simulate=True)
    result = server.set_parameters(min_distance=10.0, max_distance=5.0)
    assert "error" in result


def test_firmware_version(server):
    server.connect(simulate=True)
    assert server.get_firmware_version() == {
        "version": "V255.255.255", "major": 255, "minor": 255, "patch": 255,
    }


def test_frequency_tool(server):
    """Report rates map to their protocol codes."""
    server.connect(simulate=True)
    assert server.set_data_transmit_frequency(10) == {
        "reports_per_second": 10, "code": "0x0A",
    }
    assert server._channel.frequency is DataFrequency.HZ_10
    assert "error" in server.set_data_transmit_frequency(7)


def test_target_number_tool(server):
    server.connect(simulate=True)
    assert server.set_target_number(8) == {"target_number": 8, "meaning": "unresolved"}
    assert "error" in server.set_target_number(0)


def test_transmit_toggles(server):
    server.connect(simulate=True)
    assert server.enable_data_transmit() == {"transmitting": True}
    assert server._channel.transmitting is True
    assert server.disable_data_transmit() == {"transmitting": False}
    assert server.set_zero_data_reporting(False) == {"zero_reporting": False}


def test_device_failure_mapped(server):
    """A FAILURE status becomes an error dict, not an exception."""
    server.connect(simulate=True)
    server._channel.fail_commands.add(Command.ENABLE_TRANSMIT)
    result = server.enable_data_transmit()
    assert result["error"].startswith("Command rejected by radar")
    assert result["status"] == Status.FAILURE


def test_command_timeout_mapped(server):
    """Exhausting the attempt budget becomes an error dict."""
    mock_client = MagicMock()
    mock_client.get_parameters.side_effect = CommandTimeout(Command.GET_PARAMETERS, 10)
    with patch.object(server, "_get_client", return_value=mock_client):
        result = server.get_parameters()
    assert result["error"].startswith("No response from radar")
    assert result["attempts"] == 10


def test_get_target_data_from_client(server):
    mock_client = MagicMock()
    mock_client.stream = None
    mock_client.get_target_data.return_value = [
        TargetRecord(id=2, distance=4.5, speed=1.25, angle=10.0, snr=0.0)
    ]
    with patch.object(server, "_get_client", return_value=mock_client):
        result = server.get_target_data(capacity=5)
    mock_client.get_target_data.assert_called_once_with(5)
    assert result["count"] == 1
    assert result["targets"][0]["distance"] == 4.5


def test_get_target_data_capacity_checked(server):
    assert "error" in server.get_target_data(capacity=36)


def test_failure_for_device_failure(server):
    result = server._failure(DeviceFailure(Command.SET_PARAMETERS, 0xFF), "x")
    assert result == {"error": "Command rejected by radar: x", "status": 0xFF}


def test_streaming_tools(server):
    server.connect(simulate=True)
    assert server.start_streaming() == {"streaming": True}
    assert server.start_streaming()["message"] == "Already streaming"
    snapshot = json.loads(server.resource_stream_targets())
    assert snapshot["state"] == "running"
    assert server.stop_streaming() == {"streaming": False}
    assert json.loads(server.resource_stream_targets())["streaming"] is False


def test_frequencies_resource(server):
    rates = json.loads(server.resource_frequencies())["frequencies"]
    assert {"code": "0x14", "reports_per_second": 20} in rates
    assert len(rates) == 8


def test_disconnect_resets_state(server):
    server.connect(simulate=True)
    assert server.disconnect() == {"disconnected": True}
    assert json.loads(server.resource_device_status()) == {"connected": False}
