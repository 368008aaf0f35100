"""MCP server entry point for the smart road radar.

Exposes the radar's commands as tools and its streamed state as
resources via the Model Context Protocol, using the official Python MCP
SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from . import config
from .client import RadarClient
from .errors import ChannelError, CommandTimeout, DeviceFailure, RadarError
from .models.parameters import Parameters
from .models.targets import MAX_TARGETS
from .protocol.commands import DataFrequency, REPORTS_PER_SECOND, TARGET_NUMBER_MEANING
from .simulator import RadarSimulator
from .transport.serial_connection import SerialConnection

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "smart-road-radar",
    instructions="MCP server for a serial traffic radar (smart road radar protocol)",
)

# Global connection state
_channel: SerialConnection | RadarSimulator | None = None
_client: RadarClient | None = None


def _get_client() -> RadarClient:
    """Get the active radar client, raising if not connected."""
    if _client is None:
        raise RuntimeError(
            "Not connected to radar. Use the 'connect' tool first."
        )
    return _client


def _failure(e: RadarError, what: str) -> dict[str, Any]:
    """Human-readable error dict for a failed command."""
    if isinstance(e, DeviceFailure):
        return {"error": f"Command rejected by radar: {what}", "status": e.status}
    if isinstance(e, CommandTimeout):
        return {"error": f"No response from radar: {what}", "attempts": e.attempts}
    return {"error": f"Radar connection failed: {e}"}


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(
    port: str | None = None,
    baud_rate: int | None = None,
    simulate: bool | None = None,
) -> dict[str, Any]:
    """Open the serial link to the radar and confirm it answers.

    Settings not given here come from the config file.

    Args:
        port: Serial port, e.g. /dev/ttyUSB0 or COM3.
        baud_rate: Line speed (default 115200).
        simulate: Use the built-in simulated radar instead of hardware.
    """
    global _channel, _client
    if _client is not None:
        return {"connected": True, "message": "Already connected"}

    cfg = config.load()
    if port is not None:
        cfg["serial_port"] = port
    if baud_rate is not None:
        cfg["baud_rate"] = baud_rate
    if simulate is not None:
        cfg["simulate"] = simulate

    if cfg["simulate"]:
        channel = RadarSimulator(realtime=True, read_timeout=float(cfg["read_timeout"]))
    else:
        try:
            channel = SerialConnection(cfg["serial_port"], config.port_config(cfg))
            channel.open()
        except (ConnectionError, ValueError) as e:
            return {"connected": False, "error": str(e)}

    client = RadarClient(channel, attempts=int(cfg["attempts"]))
    result: dict[str, Any] = {
        "connected": True,
        "port": "simulator" if cfg["simulate"] else cfg["serial_port"],
    }
    try:
        result["firmware"] = str(client.get_firmware_version())
    except CommandTimeout:
        result["firmware"] = None
    except ChannelError as e:
        channel.close()
        return {"connected": False, "error": str(e)}

    _channel, _client = channel, client
    return result


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Stop streaming and close the serial link."""
    global _channel, _client
    if _client is not None:
        _client.stop_streaming()
    if _channel is not None:
        _channel.close()
    _channel = None
    _client = None
    return {"disconnected": True}


# ─── DEVICE TOOLS ─────────────────────────────────────────────────────

@mcp.tool()
def get_firmware_version() -> dict[str, Any]:
    """Read the radar's firmware version (major.minor.patch)."""
    client = _get_client()
    try:
        version = client.get_firmware_version()
    except RadarError as e:
        return _failure(e, "no firmware version")
    return {
        "version": str(version),
        "major": version.major,
        "minor": version.minor,
        "patch": version.patch,
    }


@mcp.tool()
def set_parameters(
    min_distance: float = 0.0,
    max_distance: float = 13.0,
    min_speed: float = 0.0,
    max_speed: float = 5.0,
    min_angle: float = -60.0,
    max_angle: float = 60.0,
    left_border: float = -6.0,
    right_border: float = 6.0,
) -> dict[str, Any]:
    """Upload the detection envelope. Calling with no arguments restores defaults.

    Args:
        min_distance: Nearest reported distance, metres.
        max_distance: Farthest reported distance, metres.
        min_speed: Slowest reported speed, m/s.
        max_speed: Fastest reported speed, m/s.
        min_angle: Leftmost reported angle, degrees.
        max_angle: Rightmost reported angle, degrees.
        left_border: Lateral limit left of boresight, metres.
        right_border: Lateral limit right of boresight, metres.
    """
    if min_distance > max_distance or min_speed > max_speed or min_angle > max_angle:
        return {"error": "Each minimum must not exceed its maximum"}

    parameters = Parameters(
        min_distance=min_distance,
        max_distance=max_distance,
        min_speed=min_speed,
        max_speed=max_speed,
        min_angle=min_angle,
        max_angle=max_angle,
        left_border=left_border,
        right_border=right_border,
    )
    client = _get_client()
    try:
        client.set_parameters(parameters)
    except RadarError as e:
        return _failure(e, "parameters not applied")
    return {"stored": True, "parameters": parameters.to_dict()}


@mcp.tool()
def get_parameters() -> dict[str, Any]:
    """Read the detection envelope from the radar."""
    client = _get_client()
    try:
        parameters = client.get_parameters()
    except RadarError as e:
        return _failure(e, "no parameters")
    return {"parameters": parameters.to_dict()}


@mcp.tool()
def set_target_number(number: int) -> dict[str, Any]:
    """Configure the radar's target number.

    The vendor documentation does not say whether this is a target count
    or the highest target index reported.

    Args:
        number: 1-35.
    """
    if not 1 <= number <= MAX_TARGETS:
        return {"error": f"Target number must be 1-{MAX_TARGETS}"}

    client = _get_client()
    try:
        client.set_target_number(number)
    except RadarError as e:
        return _failure(e, "target number not applied")
    return {"target_number": number, "meaning": TARGET_NUMBER_MEANING.value}


@mcp.tool()
def get_target_data(capacity: int = MAX_TARGETS) -> dict[str, Any]:
    """Wait for the next target report and return its targets.

    Data transmission must be enabled. An empty list means the radar
    reported no detections.

    Args:
        capacity: Maximum number of targets to return (0-35).
    """
    if not 0 <= capacity <= MAX_TARGETS:
        return {"error": f"Capacity must be 0-{MAX_TARGETS}"}

    client = _get_client()
    if client.stream is not None and client.stream.running:
        targets = client.stream.latest_targets[:capacity]
    else:
        try:
            targets = client.get_target_data(capacity)
        except RadarError as e:
            return _failure(e, "no target report")
    return {"count": len(targets), "targets": [t.to_dict() for t in targets]}


@mcp.tool()
def enable_data_transmit() -> dict[str, Any]:
    """Start continuous target reports."""
    client = _get_client()
    try:
        client.enable_data_transmit()
    except RadarError as e:
        return _failure(e, "transmit not enabled")
    return {"transmitting": True}


@mcp.tool()
def disable_data_transmit() -> dict[str, Any]:
    """Stop continuous target reports."""
    client = _get_client()
    try:
        client.disable_data_transmit()
    except RadarError as e:
        return _failure(e, "transmit not disabled")
    return {"transmitting": False}


@mcp.tool()
def set_data_transmit_frequency(reports_per_second: int) -> dict[str, Any]:
    """Set how many target reports the radar sends per second.

    Args:
        reports_per_second: One of 1, 2, 3, 4, 5, 10, 15, 20.
    """
    try:
        code = DataFrequency.from_rate(reports_per_second)
    except ValueError as e:
        return {"error": str(e)}

    client = _get_client()
    try:
        client.set_data_transmit_frequency(code)
    except RadarError as e:
        return _failure(e, "frequency not applied")
    return {"reports_per_second": reports_per_second, "code": f"0x{code.value:02X}"}


@mcp.tool()
def set_zero_data_reporting(enabled: bool) -> dict[str, Any]:
    """Choose whether the radar sends reports when nothing is detected.

    Args:
        enabled: True to send empty reports, False to suppress them.
    """
    client = _get_client()
    try:
        client.set_zero_data_reporting(enabled)
    except RadarError as e:
        return _failure(e, "zero reporting not changed")
    return {"zero_reporting": enabled}


# ─── STREAMING TOOLS ──────────────────────────────────────────────────

@mcp.tool()
def start_streaming() -> dict[str, Any]:
    """Start decoding streamed reports in the background.

    Read the latest targets from the radar://stream/targets resource or
    with get_target_data.
    """
    client = _get_client()
    if client.stream is not None and client.stream.running:
        return {"streaming": True, "message": "Already streaming"}
    client.start_streaming()
    return {"streaming": True}


@mcp.tool()
def stop_streaming() -> dict[str, Any]:
    """Stop the background stream reader."""
    client = _get_client()
    client.stop_streaming()
    return {"streaming": False}


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("radar://device/status")
def resource_device_status() -> str:
    """Connection state and streaming state."""
    if _client is None:
        return json.dumps({"connected": False})
    stream = _client.stream
    return json.dumps({
        "connected": True,
        "simulated": isinstance(_channel, RadarSimulator),
        "streaming": stream is not None and stream.running,
        "attempts": _client.attempts,
    })


@mcp.resource("radar://stream/targets")
def resource_stream_targets() -> str:
    """Latest values decoded by the stream reader."""
    if _client is None or _client.stream is None:
        return json.dumps({"streaming": False, "targets": []})
    return json.dumps(_client.stream.snapshot())


@mcp.resource("radar://protocol/frequencies")
def resource_frequencies() -> str:
    """Supported report rates and their protocol codes."""
    rates = [
        {"code": f"0x{code.value:02X}", "reports_per_second": rate}
        for code, rate in REPORTS_PER_SECOND.items()
    ]
    return json.dumps({"frequencies": rates})


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    cfg = config.load()
    logging.basicConfig(level=getattr(logging, str(cfg["log_level"]).upper(), logging.INFO))
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
