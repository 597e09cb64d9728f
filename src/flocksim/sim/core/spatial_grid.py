from __future__ import annotations

import math
from typing import Dict, List, Sequence, Tuple

from pygame.math import Vector2


class SpatialGrid:
    """Uniform bucket grid over agent indices.

    Buckets hold indices into the position list passed to ``rebuild`` so callers
    can look up any per-agent buffer with the same index.
    """

    def __init__(self, cell_size: float) -> None:
        self._cell_size = cell_size
        self._cells: Dict[Tuple[int, int], List[int]] = {}
        self._active_keys: List[Tuple[int, int]] = []
        self._positions: Sequence[Vector2] = ()

    @property
    def cell_size(self) -> float:
        return self._cell_size

    def build_neighbor_cell_offsets(self, radius: float) -> List[Tuple[int, int]]:
        cell_range = max(0, int(math.ceil(radius / self._cell_size)))
        return [(dx, dy) for dx in range(-cell_range, cell_range + 1) for dy in range(-cell_range, cell_range + 1)]

    def clear(self) -> None:
        for key in self._active_keys:
            bucket = self._cells.get(key)
            if bucket:
                bucket.clear()
        self._active_keys.clear()
        self._positions = ()

    def rebuild(self, positions: Sequence[Vector2]) -> None:
        self.clear()
        self._positions = positions
        for index, position in enumerate(positions):
            self.insert(index, position)

    def insert(self, index: int, position: Vector2) -> None:
        key = self._cell_key(position)
        bucket = self._cells.get(key)
        if bucket is None:
            bucket = []
            self._cells[key] = bucket
            self._active_keys.append(key)
        elif not bucket:
            # Bucket exists but was cleared by the last rebuild; mark it active again.
            self._active_keys.append(key)
        bucket.append(index)

    def get_neighbors(self, position: Vector2, radius: float) -> List[int]:
        out_indices: List[int] = []
        self.collect_neighbors(
            position, self.build_neighbor_cell_offsets(radius), radius * radius, out_indices
        )
        return out_indices

    def collect_neighbors(
        self,
        position: Vector2,
        cell_offsets: List[Tuple[int, int]],
        radius_sq: float,
        out_indices: List[int],
        exclude_index: int | None = None,
        out_dist_sq: List[float] | None = None,
    ) -> None:
        """
        Fill ``out_indices`` (and ``out_dist_sq`` when given) with every indexed
        position within ``sqrt(radius_sq)`` of ``position``.

        Buffers are cleared first so callers can reuse them across agents.
        """

        out_indices.clear()
        if out_dist_sq is not None:
            out_dist_sq.clear()
        base_x, base_y = self._cell_key(position)
        pos_x = position.x
        pos_y = position.y
        cells = self._cells
        positions = self._positions

        if len(cell_offsets) > len(self._active_keys):
            # Fewer occupied cells than offsets: visit every occupied bucket instead.
            keys = self._active_keys
        else:
            keys = [(base_x + dx, base_y + dy) for dx, dy in cell_offsets]

        for key in keys:
            bucket = cells.get(key)
            if not bucket:
                continue
            for index in bucket:
                if index == exclude_index:
                    continue
                other = positions[index]
                offset_x = other.x - pos_x
                offset_y = other.y - pos_y
                dist_sq = offset_x * offset_x + offset_y * offset_y
                if dist_sq <= radius_sq:
                    out_indices.append(index)
                    if out_dist_sq is not None:
                        out_dist_sq.append(dist_sq)

    def _cell_key(self, position: Vector2) -> Tuple[int, int]:
        return (int(position.x // self._cell_size), int(position.y // self._cell_size))
