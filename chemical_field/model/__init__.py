"""Model package for chemical field simulation."""

from .state import FieldSnapshot
from .geometry import FieldGeometry
from .coefficients import CoefficientModel, diffusion_coefficients
from .field import Axis, BoundaryPolicy, ChemicalField, FieldKind, partition_slabs

__all__ = [
    'FieldSnapshot',
    'FieldGeometry',
    'CoefficientModel',
    'diffusion_coefficients',
    'Axis',
    'BoundaryPolicy',
    'ChemicalField',
    'FieldKind',
    'partition_slabs',
]
