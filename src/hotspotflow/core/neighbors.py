"""Contiguity-based neighbor graphs over polygon collections."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import shapely
from shapely import STRtree
from shapely.geometry.base import BaseGeometry

from hotspotflow.core.errors import GeometryError
from hotspotflow.core.schema import ContiguityRule
from hotspotflow.core.unit_frame import UnitFrame
from hotspotflow.core.utils import get_logger

logger = get_logger(__name__)

_POLYGONAL = {"Polygon", "MultiPolygon"}


@dataclass(frozen=True)
class AdjacencyRelation:
    """
    Neighbor sets for an ordered collection of spatial units.

    ``neighbors[i]`` holds the sorted positions of the units adjacent to the
    unit at position ``i``. Positions follow collection order, so the
    relation lines up with value vectors and weights rows.

    Attributes:
        ids: Unit identifiers in collection order
        neighbors: Sorted neighbor positions per unit
        rule: Contiguity rule the relation was derived with
        self_included: Whether every unit lists itself (Gi* neighborhoods)
    """

    ids: tuple[str, ...]
    neighbors: tuple[tuple[int, ...], ...]
    rule: ContiguityRule = ContiguityRule.QUEEN
    self_included: bool = False

    def __post_init__(self) -> None:
        if len(self.ids) != len(self.neighbors):
            raise ValueError(
                f"Got {len(self.ids)} ids but {len(self.neighbors)} neighbor sets"
            )
        n = len(self.ids)
        for i, row in enumerate(self.neighbors):
            for j in row:
                if not 0 <= j < n:
                    raise ValueError(f"Neighbor index {j} of unit {i} is out of range")

    @classmethod
    def from_dict(
        cls,
        mapping: dict[str, Sequence[str]],
        rule: ContiguityRule = ContiguityRule.QUEEN,
    ) -> AdjacencyRelation:
        """Build a relation from ``{id: [neighbor ids]}``, keeping the dict's order."""
        ids = tuple(str(key) for key in mapping)
        position = {unit_id: i for i, unit_id in enumerate(ids)}
        neighbors = []
        for unit_id in ids:
            try:
                row = {position[str(other)] for other in mapping[unit_id]}
            except KeyError as exc:
                raise ValueError(f"Unknown neighbor {exc.args[0]!r} of unit {unit_id!r}") from exc
            neighbors.append(tuple(sorted(row)))
        return cls(ids=ids, neighbors=tuple(neighbors), rule=rule)

    @property
    def n(self) -> int:
        """Number of units."""
        return len(self.ids)

    def cardinalities(self) -> np.ndarray:
        """Number of neighbors of each unit."""
        return np.array([len(row) for row in self.neighbors], dtype=np.int64)

    def total_links(self) -> int:
        """Sum of all neighbor-set sizes."""
        return int(sum(len(row) for row in self.neighbors))

    def isolates(self) -> list[str]:
        """Identifiers of units with an empty neighbor set."""
        return [self.ids[i] for i, row in enumerate(self.neighbors) if not row]

    def neighbor_ids(self, unit_id: str) -> list[str]:
        """Identifiers of the neighbors of *unit_id*."""
        try:
            i = self.ids.index(str(unit_id))
        except ValueError as exc:
            raise KeyError(f"Unknown unit {unit_id!r}") from exc
        return [self.ids[j] for j in self.neighbors[i]]

    def is_symmetric(self) -> bool:
        """Check that every link has a reverse link."""
        links = {(i, j) for i, row in enumerate(self.neighbors) for j in row}
        return all((j, i) in links for i, j in links)

    def is_irreflexive(self) -> bool:
        """Check that no unit lists itself."""
        return all(i not in row for i, row in enumerate(self.neighbors))

    def include_self(self) -> AdjacencyRelation:
        """Return a relation in which every unit is also its own neighbor."""
        if self.self_included:
            return self
        neighbors = tuple(
            tuple(sorted(set(row) | {i})) for i, row in enumerate(self.neighbors)
        )
        return AdjacencyRelation(
            ids=self.ids, neighbors=neighbors, rule=self.rule, self_included=True
        )

    def to_dict(self) -> dict[str, list[str]]:
        """Return ``{id: [neighbor ids]}`` in collection order."""
        return {
            unit_id: [self.ids[j] for j in row]
            for unit_id, row in zip(self.ids, self.neighbors, strict=True)
        }

    def summary(self) -> dict[str, float | int]:
        """Counts describing the graph, for logging and metadata."""
        cards = self.cardinalities()
        return {
            "n_units": self.n,
            "total_links": self.total_links(),
            "n_isolates": len(self.isolates()),
            "mean_neighbors": float(cards.mean()) if self.n else 0.0,
            "max_neighbors": int(cards.max()) if self.n else 0,
        }

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"AdjacencyRelation(n={self.n}, links={self.total_links()}, "
            f"rule={self.rule.value}, self_included={self.self_included})"
        )


def _validate_polygons(geoms: Sequence[BaseGeometry], ids: Sequence[str]) -> None:
    """Raise GeometryError for empty, non-polygonal or invalid geometries."""
    for unit_id, geom in zip(ids, geoms, strict=True):
        if geom is None or geom.is_empty:
            raise GeometryError(f"Unit {unit_id!r} has an empty geometry")
        if geom.geom_type not in _POLYGONAL:
            raise GeometryError(f"Unit {unit_id!r} is a {geom.geom_type}, expected a polygon")
        if not geom.is_valid:
            reason = shapely.is_valid_reason(geom)
            raise GeometryError(f"Unit {unit_id!r} has an invalid geometry: {reason}")


def contiguity(
    units: UnitFrame | Sequence[BaseGeometry],
    rule: ContiguityRule | str = ContiguityRule.QUEEN,
    ids: Sequence[str] | None = None,
) -> AdjacencyRelation:
    """
    Derive a contiguity neighbor graph from polygon boundaries.

    Under the queen rule two units are neighbors when their boundaries share
    at least one point (an edge or a single vertex). Under the rook rule the
    shared boundary must have positive length. A unit nested inside another
    without touching its boundary is not a neighbor of it.

    Args:
        units: UnitFrame, or a sequence of polygons in collection order
        rule: Contiguity rule
        ids: Identifiers for a bare geometry sequence (defaults to positions)

    Returns:
        Irreflexive, symmetric AdjacencyRelation

    Raises:
        GeometryError: If any geometry is empty, non-polygonal or invalid
    """
    rule = ContiguityRule(rule)

    if isinstance(units, UnitFrame):
        geoms = units.geometries()
        unit_ids = units.ids()
    else:
        geoms = list(units)
        unit_ids = [str(i) for i in ids] if ids is not None else [str(i) for i in range(len(geoms))]
    if len(unit_ids) != len(geoms):
        raise ValueError(f"Got {len(unit_ids)} ids but {len(geoms)} geometries")
    if len(set(unit_ids)) != len(unit_ids):
        raise GeometryError("Unit identifiers must be unique")

    _validate_polygons(geoms, unit_ids)
    logger.info(f"Building {rule.value} contiguity for {len(geoms)} units")

    tree = STRtree(geoms)
    left, right = tree.query(geoms, predicate="intersects")
    boundaries = [geom.boundary for geom in geoms]

    neighbor_sets: list[set[int]] = [set() for _ in geoms]
    for i, j in zip(left.tolist(), right.tolist(), strict=True):
        if i == j:
            continue
        # Interiors can overlap (nesting) while boundaries stay apart.
        if not boundaries[i].intersects(boundaries[j]):
            continue
        if rule is ContiguityRule.ROOK:
            shared = boundaries[i].intersection(boundaries[j])
            if shared.length <= 0:
                continue
        neighbor_sets[i].add(j)
        neighbor_sets[j].add(i)

    relation = AdjacencyRelation(
        ids=tuple(unit_ids),
        neighbors=tuple(tuple(sorted(row)) for row in neighbor_sets),
        rule=rule,
    )

    isolates = relation.isolates()
    if isolates:
        logger.warning(f"{len(isolates)} isolate(s) with no {rule.value} neighbors: {isolates[:5]}")
    logger.debug(f"Contiguity summary: {relation.summary()}")
    return relation


def queen_contiguity(
    units: UnitFrame | Sequence[BaseGeometry],
    ids: Sequence[str] | None = None,
) -> AdjacencyRelation:
    """Queen contiguity: neighbors share any boundary point."""
    return contiguity(units, ContiguityRule.QUEEN, ids=ids)


def rook_contiguity(
    units: UnitFrame | Sequence[BaseGeometry],
    ids: Sequence[str] | None = None,
) -> AdjacencyRelation:
    """Rook contiguity: neighbors share a boundary segment."""
    return contiguity(units, ContiguityRule.ROOK, ids=ids)
