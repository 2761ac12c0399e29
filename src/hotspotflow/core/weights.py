"""Spatial weights built from adjacency relations."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from hotspotflow.core.errors import DimensionMismatchError
from hotspotflow.core.neighbors import AdjacencyRelation
from hotspotflow.core.schema import WeightsStyle
from hotspotflow.core.utils import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SpatialWeights:
    """
    Sparse spatial weights matrix in row form.

    ``rows[i]`` lists ``(j, w_ij)`` pairs for the neighbors of unit ``i``.
    Isolates have an empty row; nothing is ever divided by their degree.

    Attributes:
        adjacency: Relation the weights were derived from
        style: Standardization scheme applied
        rows: Outgoing weights per unit, in collection order
    """

    adjacency: AdjacencyRelation
    style: WeightsStyle
    rows: tuple[tuple[tuple[int, float], ...], ...]

    @property
    def n(self) -> int:
        """Number of units (matrix dimension)."""
        return len(self.rows)

    @property
    def ids(self) -> tuple[str, ...]:
        """Unit identifiers in collection order."""
        return self.adjacency.ids

    @property
    def includes_self(self) -> bool:
        """Whether each unit carries a weight on itself."""
        return self.adjacency.self_included

    def row_sums(self) -> np.ndarray:
        """Sum of outgoing weights per unit (W_i)."""
        return np.array([sum(w for _, w in row) for row in self.rows], dtype=np.float64)

    def row_sums_of_squares(self) -> np.ndarray:
        """Sum of squared outgoing weights per unit (S1_i)."""
        return np.array([sum(w * w for _, w in row) for row in self.rows], dtype=np.float64)

    def lag(self, values: np.ndarray) -> np.ndarray:
        """
        Weighted neighborhood sum of *values* for every unit.

        Isolates get 0.

        Raises:
            DimensionMismatchError: If *values* does not have one entry per unit
        """
        x = np.asarray(values, dtype=np.float64)
        if x.ndim != 1 or x.shape[0] != self.n:
            raise DimensionMismatchError(expected=self.n, actual=int(x.size))
        out = np.zeros(self.n, dtype=np.float64)
        for i, row in enumerate(self.rows):
            if row:
                idx = np.fromiter((j for j, _ in row), dtype=np.int64, count=len(row))
                w = np.fromiter((w for _, w in row), dtype=np.float64, count=len(row))
                out[i] = float(np.dot(w, x[idx]))
        return out

    def to_dense(self) -> np.ndarray:
        """Return the full n x n weights matrix."""
        matrix = np.zeros((self.n, self.n), dtype=np.float64)
        for i, row in enumerate(self.rows):
            for j, w in row:
                matrix[i, j] = w
        return matrix

    def to_dict(self) -> dict[str, dict[str, float]]:
        """Return ``{id: {neighbor id: weight}}`` in collection order."""
        ids = self.ids
        return {ids[i]: {ids[j]: w for j, w in row} for i, row in enumerate(self.rows)}

    def with_self(self) -> SpatialWeights:
        """Rebuild the weights with every unit included in its own neighborhood."""
        if self.includes_self:
            return self
        return build_weights(self.adjacency.include_self(), self.style)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"SpatialWeights(n={self.n}, style={self.style.value}, "
            f"includes_self={self.includes_self})"
        )


def build_weights(
    adjacency: AdjacencyRelation,
    style: WeightsStyle | str = WeightsStyle.BINARY,
) -> SpatialWeights:
    """
    Turn an adjacency relation into a standardized weights matrix.

    Styles:
        - ``binary``: globally standardized; every link weighs
          ``1 / total_link_count`` where total_link_count is the sum of all
          neighbor-set sizes, so all weights together sum to 1.
        - ``row_standardized``: each neighbor of unit ``i`` weighs ``1 / deg(i)``,
          so every non-isolate row sums to 1.

    Args:
        adjacency: Neighbor sets in collection order
        style: Standardization scheme (spdep codes "C" and "W" are accepted)

    Returns:
        SpatialWeights
    """
    style = WeightsStyle.parse(style)
    total_links = adjacency.total_links()

    rows: list[tuple[tuple[int, float], ...]] = []
    if style is WeightsStyle.BINARY:
        weight = 1.0 / total_links if total_links else 0.0
        for row in adjacency.neighbors:
            rows.append(tuple((j, weight) for j in row))
    else:
        for row in adjacency.neighbors:
            if not row:
                rows.append(())
                continue
            weight = 1.0 / len(row)
            rows.append(tuple((j, weight) for j in row))

    n_isolates = sum(1 for row in rows if not row)
    logger.info(
        f"Built {style.value} weights for {adjacency.n} units "
        f"({total_links} links, {n_isolates} isolates)"
    )
    return SpatialWeights(adjacency=adjacency, style=style, rows=tuple(rows))
