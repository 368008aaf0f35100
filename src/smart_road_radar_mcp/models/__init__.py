"""Value objects for the detection envelope and target reports."""

from .parameters import Parameters, ParameterLayout
from .targets import TargetRecord, TargetProtocol, decode_targets
