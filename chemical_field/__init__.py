"""Chemical concentration fields for agent-based bacterial simulations."""

from .model import (
    Axis,
    BoundaryPolicy,
    ChemicalField,
    CoefficientModel,
    FieldGeometry,
    FieldKind,
    FieldSnapshot,
)
from .config import SimulationConfig, build_field, build_fields, load_config

__all__ = [
    'Axis',
    'BoundaryPolicy',
    'ChemicalField',
    'CoefficientModel',
    'FieldGeometry',
    'FieldKind',
    'FieldSnapshot',
    'SimulationConfig',
    'build_field',
    'build_fields',
    'load_config',
]
