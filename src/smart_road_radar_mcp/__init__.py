"""Client for the smart road traffic radar serial protocol, with an MCP server."""

from .client import RadarClient
from .errors import (
    RadarError,
    InvalidFrameError,
    CommandTimeout,
    DeviceFailure,
    ChannelError,
    ChannelTimeout,
)
from .models.parameters import Parameters
from .models.targets import TargetRecord
from .simulator import RadarSimulator
from .stream import StreamReader

__version__ = "0.1.0"
