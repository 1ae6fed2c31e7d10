"""
BOM graph traversal and the cycle guard.

Downward (parent -> children) and upward (child -> parents) walks over the
persisted BomItem edges share one depth-first routine, ``iter_paths``; the
direction is a parameter. The cycle guard and the where-used resolver are
both built on it.

Key Features:
- Single traversal for both directions with an optional depth bound
- Visited-set pruning for reachability checks (O(V+E) below the start part)
- Detection of cycles that already exist in stored data
- can_add_edge(): decides whether a new parent -> child edge is safe
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from src.models import BomItem, Part
from src.services.database import session_scope
from src.services.exceptions import MaxDepthExceededError


class Direction(str, Enum):
    """Which way a traversal follows BOM edges."""

    DOWN = "down"  # parent -> children (tree expansion, cycle guard)
    UP = "up"  # child -> parents (where-used)


class CycleDetected(Exception):
    """Raised by a pruned traversal that finds an edge back into its own path.

    Only reachable when the stored edges already contain a cycle.

    Args:
        path: Part ids from the traversal start around the cycle, the
            repeated part last
    """

    def __init__(self, path: Sequence[int]):
        self.path = list(path)
        super().__init__(f"Cycle detected along parts {self.path}")


@dataclass(frozen=True)
class TraversalStep:
    """One edge followed by iter_paths().

    Attributes:
        edge: The BomItem that was followed
        part_id: Part reached by following the edge
        depth: Hops from the start part (1 = direct neighbour)
        path: Part ids from the start part to part_id, inclusive
    """

    edge: BomItem
    part_id: int
    depth: int
    path: Tuple[int, ...]


@dataclass
class CycleCheckResult:
    """Outcome of can_add_edge().

    Attributes:
        allowed: True when the edge can be inserted
        reason: Human-readable explanation when not allowed
        path: Part ids of the existing path that the edge would close,
            starting at the proposed child and ending at the proposed parent
    """

    allowed: bool
    reason: Optional[str] = None
    path: List[int] = field(default_factory=list)


def neighbor_edges(session: Session, part_id: int, direction: Direction) -> List[BomItem]:
    """
    Get the edges leaving a part in the given direction.

    DOWN returns the part's BOM lines ordered by position, then insertion
    order. UP returns the lines that use the part, ordered by parent part
    number.
    """
    query = session.query(BomItem)
    if direction == Direction.DOWN:
        return (
            query.filter(BomItem.parent_part_id == part_id)
            .order_by(BomItem.position, BomItem.id)
            .all()
        )
    return (
        query.join(Part, Part.id == BomItem.parent_part_id)
        .filter(BomItem.child_part_id == part_id)
        .order_by(Part.part_number, BomItem.id)
        .all()
    )


def _reached_part_id(edge: BomItem, direction: Direction) -> int:
    return edge.child_part_id if direction == Direction.DOWN else edge.parent_part_id


def iter_paths(
    session: Session,
    start_part_id: int,
    direction: Direction,
    max_depth: Optional[int] = None,
    prune_visited: bool = False,
) -> Iterator[TraversalStep]:
    """
    Depth-first walk over BOM edges starting at one part.

    Yields a TraversalStep for every edge followed, in pre-order. Without
    pruning every path is enumerated, so a part reachable along two routes
    is yielded twice (once per occurrence). With ``prune_visited`` each part
    is expanded at most once, which is what reachability checks need.

    Args:
        session: SQLAlchemy session
        start_part_id: Part to start from (not yielded itself)
        direction: Direction.DOWN or Direction.UP
        max_depth: Deepest hop count allowed; None for unbounded
        prune_visited: Expand each part once and detect back edges

    Raises:
        MaxDepthExceededError: If a step would go deeper than max_depth
        CycleDetected: If pruning and an edge leads back into the current path
    """
    visited = {start_part_id}

    # One edge iterator per open level; an explicit stack keeps a stored
    # cycle bounded by max_depth instead of the interpreter recursion limit
    stack = [(iter(neighbor_edges(session, start_part_id, direction)), 0, (start_part_id,))]
    while stack:
        edges, depth, path = stack[-1]
        edge = next(edges, None)
        if edge is None:
            stack.pop()
            continue

        next_id = _reached_part_id(edge, direction)
        next_path = path + (next_id,)

        if prune_visited:
            if next_id in path:
                raise CycleDetected(next_path)
            if next_id in visited:
                continue
            visited.add(next_id)

        next_depth = depth + 1
        if max_depth is not None and next_depth > max_depth:
            raise MaxDepthExceededError(next_id, max_depth, path=next_path)

        yield TraversalStep(edge=edge, part_id=next_id, depth=next_depth, path=next_path)
        stack.append((iter(neighbor_edges(session, next_id, direction)), next_depth, next_path))


def part_numbers(session: Session, part_ids: Sequence[int]) -> List[str]:
    """Map part ids to part numbers, keeping order (unknown ids render as '#<id>')."""
    if not part_ids:
        return []
    rows = session.query(Part.id, Part.part_number).filter(Part.id.in_(set(part_ids))).all()
    by_id: Dict[int, str] = {row.id: row.part_number for row in rows}
    return [by_id.get(part_id, f"#{part_id}") for part_id in part_ids]


def can_add_edge(parent_part_id: int, child_part_id: int, session=None) -> CycleCheckResult:
    """
    Check whether adding parent -> child keeps the BOM acyclic.

    The edge closes a cycle exactly when the parent is already reachable
    from the child along existing child -> children edges. The search
    expands each part once. If the child's subtree already contains a
    cycle the edge is refused as well.

    When guarding an insert, pass the session of the locked transaction
    that performs it (see database.locked_session_scope).

    Args:
        parent_part_id: Proposed parent (assembly)
        child_part_id: Proposed child (component)
        session: Optional SQLAlchemy session

    Returns:
        CycleCheckResult
    """
    if parent_part_id == child_part_id:
        return CycleCheckResult(
            allowed=False,
            reason="A part cannot contain itself",
            path=[child_part_id],
        )

    def _impl(session):
        try:
            for step in iter_paths(session, child_part_id, Direction.DOWN, prune_visited=True):
                if step.part_id == parent_part_id:
                    labels = part_numbers(session, step.path)
                    return CycleCheckResult(
                        allowed=False,
                        reason=f"Existing path {'/'.join(labels)} would be closed by the new edge",
                        path=list(step.path),
                    )
        except CycleDetected as e:
            labels = part_numbers(session, e.path)
            return CycleCheckResult(
                allowed=False,
                reason=f"BOM below the child already contains a cycle: {'/'.join(labels)}",
                path=e.path,
            )
        return CycleCheckResult(allowed=True)

    if session is not None:
        return _impl(session)
    with session_scope() as session:
        return _impl(session)
