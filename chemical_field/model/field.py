"""Chemical field implementation: fixed gradients and diffusing concentrations."""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .coefficients import CoefficientModel, diffusion_coefficients
from .geometry import FieldGeometry
from .state import FieldSnapshot

logger = logging.getLogger(__name__)


class FieldKind(Enum):
    """Fixed fields never change after setup; diffusing fields update each step."""
    FIXED = "fixed"
    DIFFUSING = "diffusing"


class BoundaryPolicy(Enum):
    """What happens to chemical at the edges of the grid."""
    LEAK = "leak"          # edges drain into a zero-concentration exterior
    CONSERVE = "conserve"  # no flux across edges


class Axis(Enum):
    """Direction of a linear gradient."""
    X = "x"
    Y = "y"
    Z = "z"


_AXIS_INDEX = {Axis.X: 0, Axis.Y: 1, Axis.Z: 2}


def _coerce(enum_cls, value, label: str):
    """Accept an enum member or its string value."""
    try:
        return enum_cls(value)
    except ValueError:
        raise ValueError(f"Unknown {label}: {value!r}") from None


def partition_slabs(count: int, workers: int) -> List[Tuple[int, int]]:
    """
    Split [0, count) into contiguous slabs, one per worker.

    Each slab holds count // workers cells and the last slab absorbs the
    remainder. Empty slabs (more workers than cells) are dropped.
    """
    chunk = count // workers
    slabs = []
    for i in range(workers):
        start = chunk * i
        end = count if i == workers - 1 else chunk * (i + 1)
        if end > start:
            slabs.append((start, end))
    return slabs


class ChemicalField:
    """
    Discretised 3D chemical concentration field.

    Agents read and write the field using continuous simulation coordinates.
    Diffusing fields are recomputed every step into a fresh grid which then
    replaces the current one, so readers always see a complete grid.

    Diffusion per cell and face:
        D_face = ratio_axis * coeff(c, c_neighbour)
        c(t+1) = c - dt * sum(D_face * (c - c_neighbour))
    where missing neighbours read as 0 and, under CONSERVE, are skipped.
    """

    def __init__(self,
                 kind: Union[FieldKind, str],
                 boundary: Union[BoundaryPolicy, str],
                 rate: float,
                 origin: Sequence[float],
                 extent: Sequence[float],
                 boxes: Sequence[int],
                 dt: float,
                 threshold: float = 0.0,
                 colour: Tuple[int, int, int] = (255, 255, 255),
                 workers: Optional[int] = None,
                 coefficient_model: Union[CoefficientModel, str] = CoefficientModel.INVERSE_SQUARE,
                 name: Optional[str] = None):
        self.name = name
        self.kind = _coerce(FieldKind, kind, "field kind")
        self.boundary = _coerce(BoundaryPolicy, boundary, "boundary policy")
        self._coefficient_model = _coerce(CoefficientModel, coefficient_model,
                                          "coefficient model")

        self.geometry = FieldGeometry(origin, extent, boxes)

        if self.kind is FieldKind.DIFFUSING and not rate > 0:
            raise ValueError(f"Diffusing field needs a positive rate, got {rate}")
        if not dt > 0:
            raise ValueError(f"Timestep length must be positive, got {dt}")
        if workers is None:
            workers = os.cpu_count() or 1
        if workers < 1:
            raise ValueError(f"Worker count must be at least 1, got {workers}")

        self.rate = float(rate)
        self.dt = float(dt)
        self.threshold = float(threshold)  # smallest change an agent can sense
        self.colour = tuple(colour)
        self.displayed = True
        self.workers = int(workers)

        self._grid = np.zeros(self.geometry.shape, dtype=np.float64)
        self._face_ratios = self.geometry.face_ratios()
        self._slabs = partition_slabs(self.geometry.x_boxes, self.workers)
        self._update_count = 0
        self._closed = False

        # Serialises updates and point writes; readers never take it
        self._lock = threading.Lock()

        self._executor: Optional[ThreadPoolExecutor] = None
        if self.kind is FieldKind.DIFFUSING:
            self._executor = ThreadPoolExecutor(
                max_workers=self.workers,
                thread_name_prefix=f"field-{name or id(self)}"
            )
            logger.debug("Field %s: %d worker(s) over slabs %s",
                         self.name, self.workers, self._slabs)

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    @property
    def coefficient_model(self) -> CoefficientModel:
        return self._coefficient_model

    def set_coefficient_model(self, model: Union[CoefficientModel, str]) -> None:
        """Switch the diffusion scheme. Only allowed before the first update."""
        model = _coerce(CoefficientModel, model, "coefficient model")
        with self._lock:
            if self._update_count > 0:
                raise RuntimeError(
                    "Coefficient model cannot change after the field has been updated"
                )
            self._coefficient_model = model

    def set_displayed(self, displayed: bool) -> None:
        self.displayed = bool(displayed)

    def set_as_linear(self, axis: Union[Axis, str],
                      start_concentration: float,
                      end_concentration: float) -> None:
        """
        Fill the field with a linear gradient along one axis.

        Negative concentrations are rounded up to zero. Box i along the axis
        gets start + i * (end - start) / count, uniform over the other axes.
        An invalid axis is logged and leaves the field untouched.
        """
        if isinstance(axis, str):
            axis = axis.lower()
        try:
            axis = Axis(axis)
        except ValueError:
            logger.error("Invalid direction for linear field: %r", axis)
            return

        start = max(float(start_concentration), 0.0)
        end = max(float(end_concentration), 0.0)

        index = _AXIS_INDEX[axis]
        count = self.geometry.shape[index]
        con_delta = (end - start) / count
        values = start + np.arange(count) * con_delta

        broadcast_shape = [1, 1, 1]
        broadcast_shape[index] = count
        grid = np.empty(self.geometry.shape, dtype=np.float64)
        grid[...] = values.reshape(broadcast_shape)

        with self._lock:
            self._grid = grid

    def fill(self, concentration: float) -> None:
        """Set every cell to the same concentration (clamped to [0, 1])."""
        value = min(max(float(concentration), 0.0), 1.0)
        with self._lock:
            self._grid = np.full(self.geometry.shape, value, dtype=np.float64)

    # ------------------------------------------------------------------
    # Diffusion
    # ------------------------------------------------------------------

    def update(self) -> None:
        """
        Advance a diffusing field by one timestep.

        Slabs along x are computed concurrently from the current grid into a
        new grid. The new grid is published only once every slab has finished.
        Fixed fields are left untouched.
        """
        if self.kind is FieldKind.FIXED:
            return

        with self._lock:
            if self._closed:
                raise RuntimeError(f"Field {self.name!r} has been closed")

            grid = self._grid
            # Zero padding gives missing neighbours a concentration of 0
            padded = np.pad(grid, 1, mode='constant', constant_values=0.0)
            new_grid = np.empty_like(grid)
            model = self._coefficient_model

            futures = [
                self._executor.submit(self._diffuse_slab, padded, new_grid,
                                      start, end, model, self.rate)
                for start, end in self._slabs
            ]
            # Barrier: every slab must finish before the swap
            wait(futures)
            for future in futures:
                future.result()

            self._grid = new_grid
            self._update_count += 1

    def _diffuse_slab(self, padded: np.ndarray, out: np.ndarray,
                      x_start: int, x_end: int,
                      model: CoefficientModel, rate: float) -> None:
        """Compute cells [x_start, x_end) of the next grid from the padded grid."""
        nx, ny, nz = self.geometry.shape
        x_rat, y_rat, z_rat = self._face_ratios

        # Padded index i + 1 holds cell i
        inner = (slice(1, ny + 1), slice(1, nz + 1))
        cur = padded[x_start + 1:x_end + 1, inner[0], inner[1]]

        xs = np.arange(x_start, x_end).reshape(-1, 1, 1)
        ys = np.arange(ny).reshape(1, -1, 1)
        zs = np.arange(nz).reshape(1, 1, -1)

        # (neighbour values, face ratio, neighbour exists)
        faces = (
            (padded[x_start:x_end, inner[0], inner[1]], x_rat, xs > 0),
            (padded[x_start + 2:x_end + 2, inner[0], inner[1]], x_rat, xs < nx - 1),
            (padded[x_start + 1:x_end + 1, 0:ny, inner[1]], y_rat, ys > 0),
            (padded[x_start + 1:x_end + 1, 2:ny + 2, inner[1]], y_rat, ys < ny - 1),
            (padded[x_start + 1:x_end + 1, inner[0], 0:nz], z_rat, zs > 0),
            (padded[x_start + 1:x_end + 1, inner[0], 2:nz + 2], z_rat, zs < nz - 1),
        )

        delta = np.zeros_like(cur)
        for neighbour, ratio, exists in faces:
            coeff = ratio * diffusion_coefficients(model, rate, cur, neighbour)
            flux = coeff * (cur - neighbour)
            if self.boundary is BoundaryPolicy.CONSERVE:
                flux = np.where(exists, flux, 0.0)
            delta += flux

        out[x_start:x_end] = cur - self.dt * delta

    # ------------------------------------------------------------------
    # Agent interface
    # ------------------------------------------------------------------

    def add_chemical(self, amount: float, position: Sequence[float]) -> None:
        """Add chemical at a point. Concentration is capped at 1."""
        self._adjust(position, amount / self.geometry.volume)

    def remove_chemical(self, amount: float, position: Sequence[float]) -> None:
        """Take chemical from a point, e.g. when it diffuses into a cell. Floored at 0."""
        self._adjust(position, -amount / self.geometry.volume)

    def _adjust(self, position: Sequence[float], change: float) -> None:
        index = self.geometry.to_index(position)
        if index is None:
            return
        with self._lock:
            grid = self._grid
            # Each direction only enforces its own bound
            if change >= 0:
                grid[index] = min(grid[index] + change, 1.0)
            else:
                grid[index] = max(grid[index] + change, 0.0)

    def get_concentration(self, position: Sequence[float]) -> float:
        """Concentration at a point in simulation space; 0 outside the field."""
        index = self.geometry.to_index(position)
        if index is None:
            return 0.0
        return float(self._grid[index])

    # ------------------------------------------------------------------
    # Direct cell access and aggregates
    # ------------------------------------------------------------------

    def _check_cell(self, i: int, j: int, k: int) -> Tuple[int, int, int]:
        for axis, idx, count in zip("xyz", (i, j, k), self.geometry.shape):
            if not 0 <= idx < count:
                raise IndexError(f"Cell index {idx} out of range along {axis} (0..{count - 1})")
        return i, j, k

    def get_cell(self, i: int, j: int, k: int) -> float:
        return float(self._grid[self._check_cell(i, j, k)])

    def set_cell(self, i: int, j: int, k: int, concentration: float) -> None:
        """Force one cell to a concentration (clamped to [0, 1])."""
        index = self._check_cell(i, j, k)
        with self._lock:
            self._grid[index] = min(max(float(concentration), 0.0), 1.0)

    @property
    def boxes(self) -> Tuple[int, int, int]:
        return self.geometry.shape

    @property
    def update_count(self) -> int:
        return self._update_count

    @property
    def values(self) -> np.ndarray:
        """Read-only view of the current grid, indexed [x, y, z]."""
        view = self._grid.view()
        view.flags.writeable = False
        return view

    def total(self) -> float:
        return float(np.sum(self._grid))

    def mean(self) -> float:
        return float(np.mean(self._grid))

    def snapshot(self) -> FieldSnapshot:
        """Frozen copy of the field for renderers and exporters."""
        return FieldSnapshot.capture(self.name, self._update_count,
                                     self.colour, self.displayed, self._grid)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Shut down the worker pool. Further updates raise RuntimeError."""
        with self._lock:
            self._closed = True
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None
                logger.debug("Field %s: worker pool shut down", self.name)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return (f"ChemicalField(name={self.name!r}, kind={self.kind.value}, "
                f"boundary={self.boundary.value}, boxes={self.boxes})")
