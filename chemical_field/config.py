"""Configuration dataclasses and YAML loader for chemical field simulations."""

import logging
from dataclasses import dataclass, field
from typing import List, Tuple, Dict, Any, Optional
from pathlib import Path
import yaml

from .model.coefficients import CoefficientModel
from .model.field import Axis, BoundaryPolicy, ChemicalField, FieldKind

logger = logging.getLogger(__name__)


@dataclass
class GridConfig:
    origin: Tuple[float, float, float]
    extent: Tuple[float, float, float]   # width, height, depth
    boxes: Tuple[int, int, int]


@dataclass
class LinearSpec:
    axis: Axis
    start: float
    end: float


@dataclass
class FieldConfig:
    name: str
    kind: FieldKind
    boundary: BoundaryPolicy
    rate: float
    grid: GridConfig
    coefficient: CoefficientModel = CoefficientModel.INVERSE_SQUARE
    threshold: float = 0.0
    colour: Tuple[int, int, int] = (255, 255, 255)
    displayed: bool = True
    linear: Optional[LinearSpec] = None


@dataclass
class SimulationConfig:
    dt: float
    fields: List[FieldConfig]
    workers: Optional[int] = None  # None = one per CPU
    source: Optional[Path] = field(default=None)


def _parse_enum(enum_cls, value: Any, label: str):
    """Look up an enum member by its YAML string value."""
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        raise ValueError(f"Unknown {label}: {value}") from None


def _parse_triple(raw: Any, label: str, cast=float) -> Tuple:
    """Parse a 3-element list such as [x, y, z]."""
    if not isinstance(raw, (list, tuple)) or len(raw) != 3:
        raise ValueError(f"{label} must be a list of 3 values, got {raw!r}")
    return tuple(cast(v) for v in raw)


def _parse_grid(grid_raw: Dict) -> GridConfig:
    """Parse grid placement and resolution from raw YAML data."""
    return GridConfig(
        origin=_parse_triple(grid_raw.get('origin', [0, 0, 0]), 'grid.origin'),
        extent=_parse_triple(grid_raw['extent'], 'grid.extent'),
        boxes=_parse_triple(grid_raw['boxes'], 'grid.boxes', cast=int)
    )


def _parse_linear(linear_raw: Optional[Dict]) -> Optional[LinearSpec]:
    """Parse optional linear gradient setup."""
    if linear_raw is None:
        return None
    return LinearSpec(
        axis=_parse_enum(Axis, linear_raw['axis'], 'linear axis'),
        start=float(linear_raw.get('start', 0.0)),
        end=float(linear_raw.get('end', 0.0))
    )


def _parse_fields(fields_raw: List[Dict]) -> List[FieldConfig]:
    """Parse field specifications from raw YAML data."""
    fields = []
    for f in fields_raw:
        fields.append(FieldConfig(
            name=str(f['name']),
            kind=_parse_enum(FieldKind, f.get('kind', 'fixed'), 'field kind'),
            boundary=_parse_enum(BoundaryPolicy, f.get('boundary', 'leak'),
                                 'boundary policy'),
            rate=float(f.get('rate', 0.0)),
            grid=_parse_grid(f['grid']),
            coefficient=_parse_enum(CoefficientModel,
                                    f.get('coefficient', 'inverse_square'),
                                    'coefficient model'),
            threshold=float(f.get('threshold', 0.0)),
            colour=_parse_triple(f.get('colour', [255, 255, 255]), 'colour', cast=int),
            displayed=bool(f.get('displayed', True)),
            linear=_parse_linear(f.get('linear'))
        ))
    return fields


def load_config(config_path: Path) -> SimulationConfig:
    """Load and validate YAML configuration file."""
    with open(config_path) as f:
        raw = yaml.safe_load(f)

    sim_raw = raw['simulation']
    fields = _parse_fields(raw.get('fields', []))

    names = [fc.name for fc in fields]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValueError(f"Duplicate field names: {', '.join(duplicates)}")

    workers = sim_raw.get('workers')
    return SimulationConfig(
        dt=float(sim_raw['dt']),
        fields=fields,
        workers=int(workers) if workers is not None else None,
        source=Path(config_path)
    )


def build_field(field_config: FieldConfig, dt: float,
                workers: Optional[int] = None) -> ChemicalField:
    """Construct a single field and apply its initial setup."""
    chem_field = ChemicalField(
        kind=field_config.kind,
        boundary=field_config.boundary,
        rate=field_config.rate,
        origin=field_config.grid.origin,
        extent=field_config.grid.extent,
        boxes=field_config.grid.boxes,
        dt=dt,
        threshold=field_config.threshold,
        colour=field_config.colour,
        workers=workers,
        coefficient_model=field_config.coefficient,
        name=field_config.name
    )
    chem_field.set_displayed(field_config.displayed)

    if field_config.linear is not None:
        spec = field_config.linear
        chem_field.set_as_linear(spec.axis, spec.start, spec.end)

    return chem_field


def build_fields(config: SimulationConfig) -> Dict[str, ChemicalField]:
    """Construct every configured field, keyed by name."""
    fields: Dict[str, ChemicalField] = {}
    try:
        for field_config in config.fields:
            if field_config.name in fields:
                raise ValueError(f"Duplicate field name: {field_config.name}")
            fields[field_config.name] = build_field(field_config, config.dt,
                                                    config.workers)
            logger.info("Built %s field %r with %s boxes",
                        field_config.kind.value, field_config.name,
                        "x".join(str(b) for b in field_config.grid.boxes))
    except Exception:
        # Release worker pools of the fields built so far
        for built in fields.values():
            built.close()
        raise
    return fields
