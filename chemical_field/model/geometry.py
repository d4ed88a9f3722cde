"""Spatial geometry of a chemical field: box placement and point-to-cell mapping."""

from typing import Optional, Sequence, Tuple


def _as_triple(values: Sequence[float], label: str) -> Tuple[float, float, float]:
    """Coerce a length-3 sequence to a tuple of floats."""
    values = tuple(values)
    if len(values) != 3:
        raise ValueError(f"{label} must have exactly 3 components, got {len(values)}")
    return float(values[0]), float(values[1]), float(values[2])


class FieldGeometry:
    """
    Axis-aligned box in simulation space split into a regular grid of cells.

    Coordinate convention: (x, y, z) for the API, [x, y, z] for array indexing.
    """

    def __init__(self, origin: Sequence[float], extent: Sequence[float],
                 boxes: Sequence[int]):
        self.origin = _as_triple(origin, "origin")
        self.width, self.height, self.depth = _as_triple(extent, "extent")

        boxes = tuple(boxes)
        if len(boxes) != 3:
            raise ValueError(f"boxes must have exactly 3 components, got {len(boxes)}")
        for axis, count in zip("xyz", boxes):
            if int(count) != count or count < 1:
                raise ValueError(f"Box count along {axis} must be a positive integer, got {count}")
        for axis, size in zip("xyz", self.extent):
            if not size > 0:
                raise ValueError(f"Extent along {axis} must be positive, got {size}")

        self.x_boxes, self.y_boxes, self.z_boxes = (int(b) for b in boxes)

        # Remainders are tolerated: box size is simply extent / count
        self.box_width = self.width / self.x_boxes
        self.box_height = self.height / self.y_boxes
        self.box_depth = self.depth / self.z_boxes

    @property
    def extent(self) -> Tuple[float, float, float]:
        return self.width, self.height, self.depth

    @property
    def shape(self) -> Tuple[int, int, int]:
        return self.x_boxes, self.y_boxes, self.z_boxes

    @property
    def box_size(self) -> Tuple[float, float, float]:
        return self.box_width, self.box_height, self.box_depth

    @property
    def volume(self) -> float:
        """Volume of the whole field box (not of a single cell)."""
        return self.width * self.height * self.depth

    def contains(self, position: Sequence[float]) -> bool:
        """Half-open bounds test: origin <= p < origin + extent on every axis."""
        if len(position) != 3:
            raise ValueError(f"position must have exactly 3 components, got {len(position)}")
        for p, start, size in zip(position, self.origin, self.extent):
            # Written positively so NaN coordinates fall outside
            if not (start <= p < start + size):
                return False
        return True

    def to_index(self, position: Sequence[float]) -> Optional[Tuple[int, int, int]]:
        """Map a point in simulation space to its cell, or None if out of field."""
        if not self.contains(position):
            return None
        index = []
        for p, start, size, count in zip(position, self.origin,
                                          self.box_size, self.shape):
            i = int((p - start) // size)
            # Rounding just below the upper edge can land on count
            index.append(min(max(i, 0), count - 1))
        return index[0], index[1], index[2]

    def face_ratios(self) -> Tuple[float, float, float]:
        """
        Flux weights for faces orthogonal to x, y and z.

        Derived from the linear extents, 3 * extent_A / (width + height + depth),
        so a cubic field weights every face by 1.
        """
        total = self.width + self.height + self.depth
        return (3 * self.width / total,
                3 * self.height / total,
                3 * self.depth / total)

    def __repr__(self) -> str:
        return (f"FieldGeometry(origin={self.origin}, extent={self.extent}, "
                f"boxes={self.shape})")
