"""Pair nucleus regions with their enclosing whole-cell regions.

Matching runs in two phases over a quadtree built once on the whole-cell
regions:

1. Containment. Each nucleus, in input order, takes the first remaining
   whole cell (quadtree query order) whose geometry covers it.
2. Greedy overlap. Nuclei left over from phase 1 are scored against every
   remaining whole cell they partially overlap. Candidates are sorted by
   overlap fraction, highest first, and committed greedily, skipping any
   candidate whose nucleus or whole cell was already taken.

Phase 2 is a greedy approximation of maximum-weight bipartite matching and
is kept that way on purpose: it is fast and reproducible for a fixed input
order. When several whole cells cover the same nucleus, phase 1 picks
whichever the quadtree returns first.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set, Tuple

from shapely.errors import GEOSException

from cellpair.quadtree import Quadtree
from cellpair.region import Region

logger = logging.getLogger(__name__)

# Errors shapely raises for invalid or self-intersecting input.
_GEOMETRY_ERRORS = (GEOSException, ValueError)


@dataclass(frozen=True)
class MatchCandidate:
    """Phase-2 scoring of one nucleus against one whole cell.

    Both indices are positions in the lists handed to the matcher, not
    ``Region.region_id`` values.
    """

    nucleus_index: int
    whole_cell_index: int
    overlap_fraction: float


@dataclass
class MatchResult:
    """Outcome of :func:`match_regions`.

    ``pairs`` holds ``(nucleus, whole_cell)`` tuples in discovery order:
    phase-1 matches in nucleus order, then phase-2 matches by descending
    overlap. Unmatched lists keep input order.
    """

    pairs: List[Tuple[Region, Region]] = field(default_factory=list)
    unmatched_nuclei: List[Region] = field(default_factory=list)
    unmatched_whole_cells: List[Region] = field(default_factory=list)
    matched_by_containment: int = 0
    matched_by_overlap: int = 0

    def __len__(self) -> int:
        return len(self.pairs)

    def summary(self) -> dict:
        return {
            "pairs": len(self.pairs),
            "matched_by_containment": self.matched_by_containment,
            "matched_by_overlap": self.matched_by_overlap,
            "unmatched_nuclei": len(self.unmatched_nuclei),
            "unmatched_whole_cells": len(self.unmatched_whole_cells),
        }


def covers(container: Region, region: Region) -> bool:
    """Boundary-inclusive containment; False when the geometry test fails."""
    try:
        return bool(container.geometry.covers(region.geometry))
    except _GEOMETRY_ERRORS as e:
        logger.debug(
            f"covers() failed for whole cell {container.region_id} / nucleus {region.region_id}: {e}"
        )
        return False


def overlap_fraction(nucleus: Region, whole_cell: Region) -> float:
    """Share of the nucleus area lying inside the whole cell.

    Returns 0.0 when the regions do not partially overlap or when the
    geometry operation fails.
    """
    try:
        if not whole_cell.geometry.overlaps(nucleus.geometry):
            return 0.0
        intersection = whole_cell.geometry.intersection(nucleus.geometry)
        return min(intersection.area / nucleus.geometry.area, 1.0)
    except _GEOMETRY_ERRORS as e:
        logger.debug(
            f"Overlap failed for nucleus {nucleus.region_id} / whole cell {whole_cell.region_id}: {e}"
        )
        return 0.0


def build_index(regions: Sequence[Region]) -> Quadtree:
    """Index regions by envelope; items are positions in ``regions``."""
    tree = Quadtree()
    for idx, region in enumerate(regions):
        tree.insert(region.envelope, idx)
    return tree


def _find_covering_cell(
    nucleus: Region,
    whole_cells: Sequence[Region],
    tree: Quadtree,
    remaining: Set[int],
) -> Optional[int]:
    for idx in tree.query(nucleus.envelope):
        if idx in remaining and covers(whole_cells[idx], nucleus):
            return idx
    return None


def collect_candidates(
    nuclei: Sequence[Region],
    nucleus_indices: Sequence[int],
    whole_cells: Sequence[Region],
    tree: Quadtree,
    remaining: Set[int],
) -> List[MatchCandidate]:
    """Score every remaining nucleus against the remaining cells it overlaps."""
    candidates = []
    for n_idx in nucleus_indices:
        nucleus = nuclei[n_idx]
        for c_idx in tree.query(nucleus.envelope):
            if c_idx not in remaining:
                continue
            fraction = overlap_fraction(nucleus, whole_cells[c_idx])
            if fraction > 0:
                candidates.append(MatchCandidate(n_idx, c_idx, fraction))
    return candidates


def match_regions(nuclei: Sequence[Region], whole_cells: Sequence[Region]) -> MatchResult:
    """Match nuclei to whole cells, at most one to one.

    Args:
        nuclei: Nucleus regions. Iteration order drives phase 1 and the
            phase-2 tie-break.
        whole_cells: Whole-cell regions.

    Returns:
        MatchResult with committed pairs and the unmatched residue on each
        side.
    """
    nuclei = list(nuclei)
    whole_cells = list(whole_cells)

    if not nuclei:
        return MatchResult(unmatched_whole_cells=whole_cells)

    result = MatchResult()
    # Bookkeeping is by position, never by geometry.
    remaining_cells = set(range(len(whole_cells)))
    remaining_nuclei = []

    logger.info(f"Building quadtree over {len(whole_cells)} whole-cell regions")
    tree = build_index(whole_cells)

    logger.info("Finding full-coverage matches")
    for n_idx, nucleus in enumerate(nuclei):
        c_idx = _find_covering_cell(nucleus, whole_cells, tree, remaining_cells)
        if c_idx is None:
            remaining_nuclei.append(n_idx)
            continue
        remaining_cells.discard(c_idx)
        result.pairs.append((nucleus, whole_cells[c_idx]))
    result.matched_by_containment = len(result.pairs)
    logger.info(f"Matched {result.matched_by_containment} nuclei by containment")

    logger.info("Finding best-candidate matches")
    candidates = collect_candidates(nuclei, remaining_nuclei, whole_cells, tree, remaining_cells)

    logger.info(f"Sorting {len(candidates)} candidate matches by overlap")
    # sorted() is stable, so equal fractions keep discovery order.
    candidates = sorted(candidates, key=lambda c: c.overlap_fraction, reverse=True)

    unmatched = set(remaining_nuclei)
    for candidate in candidates:
        if candidate.nucleus_index not in unmatched or candidate.whole_cell_index not in remaining_cells:
            continue
        unmatched.discard(candidate.nucleus_index)
        remaining_cells.discard(candidate.whole_cell_index)
        result.pairs.append((nuclei[candidate.nucleus_index], whole_cells[candidate.whole_cell_index]))
        result.matched_by_overlap += 1
    logger.info(f"Matched {result.matched_by_overlap} nuclei using overlap")

    result.unmatched_nuclei = [nuclei[i] for i in remaining_nuclei if i in unmatched]
    result.unmatched_whole_cells = [whole_cells[i] for i in sorted(remaining_cells)]
    return result
