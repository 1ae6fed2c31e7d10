"""
BOM Service - Bill of Materials edge store and hierarchy queries.

This module provides:
- BOM line (edge) maintenance: add, update, remove, reorder
- Cycle-guarded inserts run under locked_session_scope()
- Multi-level tree expansion with path-multiplied quantities
- Flat (indented) BOM and summary counts
- Where-used (reverse) lookup over all ancestor paths
- Integrity report over stored BOM data

Trees are rebuilt from the persisted edges on every call; nothing derived
is stored or cached.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from src.models import BomItem
from src.services.bom_graph import (
    CycleDetected,
    Direction,
    can_add_edge,
    iter_paths,
    neighbor_edges,
    part_numbers,
)
from src.services.bom_tree import (
    BomTreeNode,
    ChildLink,
    FlatBomItem,
    PartRef,
    RolledUpQuantity,
    build_tree,
    flatten,
    rollup_quantities,
)
from src.services.database import locked_session_scope, session_scope
from src.services.exceptions import (
    CompositionCycleError,
    DatabaseError,
    DuplicateEdgeError,
    EdgeNotFoundError,
    InvalidQuantityError,
    MaxDepthExceededError,
    PartNotFound,
    ValidationError,
)
from src.services.logging_utils import get_service_logger, log_operation
from src.services.part_service import get_part
from src.utils.config import get_config
from src.utils.constants import DEFAULT_UNIT, MAX_NOTES_LENGTH, PATH_SEPARATOR
from src.utils.datetime_utils import utc_now
from src.utils.validators import (
    parse_quantity,
    sanitize_string,
    validate_string_length,
    validate_unit,
)

logger = get_service_logger(__name__)


# ============================================================================
# Result types
# ============================================================================


@dataclass
class BomTreeResult:
    """Expanded BOM of one root part: nested tree plus its flat form."""

    root_part: PartRef
    tree: BomTreeNode
    flat_list: List[FlatBomItem]
    total_parts: int
    max_level: int

    def to_dict(self) -> dict:
        return {
            "root_part": self.root_part.to_dict(),
            "tree": self.tree.to_dict(),
            "flat_list": [item.to_dict() for item in self.flat_list],
            "total_parts": self.total_parts,
            "max_level": self.max_level,
        }


@dataclass
class WhereUsedEntry:
    """
    One ancestor occurrence of a part.

    Attributes:
        part_id: Ancestor part id
        part_number: Ancestor part number
        name: Ancestor name
        quantity: Quantity on the ancestor's BOM line
        unit: Unit on the ancestor's BOM line
        path: Part numbers from the ancestor down to the queried part
        level: Hops above the queried part (1 = direct parent)
        child_part_id: Part the ancestor directly contains on this path
    """

    part_id: int
    part_number: str
    name: str
    quantity: Decimal
    unit: str
    path: str
    level: int
    child_part_id: int

    def to_dict(self) -> dict:
        return {
            "part_id": self.part_id,
            "part_number": self.part_number,
            "name": self.name,
            "quantity": str(self.quantity),
            "unit": self.unit,
            "path": self.path,
            "level": self.level,
            "child_part_id": self.child_part_id,
        }


@dataclass
class WhereUsedResult:
    """Every assembly that contains a part, directly or indirectly."""

    part: PartRef
    parents: List[WhereUsedEntry] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "part_id": self.part.id,
            "part_number": self.part.part_number,
            "name": self.part.name,
            "parents": [entry.to_dict() for entry in self.parents],
        }


# ============================================================================
# Helpers
# ============================================================================


def _resolve_max_depth(max_depth: Optional[int]) -> int:
    return max_depth if max_depth is not None else get_config().max_bom_depth


def _parse_quantity_or_raise(quantity) -> str:
    try:
        text, _ = parse_quantity(quantity)
    except ValueError as e:
        raise InvalidQuantityError(quantity, str(e))
    return text


def _validate_line_fields(unit, position, notes) -> None:
    errors = []
    if unit is not None:
        is_valid, error = validate_unit(unit)
        if not is_valid:
            errors.append(error)
    if position is not None and (
        isinstance(position, bool) or not isinstance(position, int) or position < 0
    ):
        errors.append("Position must be a non-negative integer")
    is_valid, error = validate_string_length(notes, MAX_NOTES_LENGTH, "Notes")
    if not is_valid:
        errors.append(error)
    if errors:
        raise ValidationError(errors)


def _child_link(edge: BomItem) -> ChildLink:
    try:
        _, amount = parse_quantity(edge.quantity)
    except ValueError as e:
        raise InvalidQuantityError(edge.quantity, f"stored on BOM item {edge.id}: {e}")
    return ChildLink(
        edge_id=edge.id,
        part=PartRef.from_part(edge.child_part),
        quantity=amount,
        unit=edge.unit,
        position=edge.position,
        notes=edge.notes,
    )


def _get_edge(session, edge_id: int) -> BomItem:
    edge = session.query(BomItem).filter(BomItem.id == edge_id).first()
    if edge is None:
        raise EdgeNotFoundError(edge_id)
    return edge


# ============================================================================
# Edge store
# ============================================================================


def add_edge(
    parent_part_id: int,
    child_part_id: int,
    quantity,
    unit: str = DEFAULT_UNIT,
    position: Optional[int] = None,
    notes: Optional[str] = None,
) -> BomItem:
    """
    Add a child part to a parent's BOM.

    The cycle check and the insert run in one serialized transaction, so
    two concurrent writers cannot both pass the check and together close a
    cycle.

    Args:
        parent_part_id: Assembly receiving the line
        child_part_id: Part being added
        quantity: Positive decimal quantity per one parent ("2", "0.5", 3)
        unit: Unit of measure (default "EA")
        position: Sibling order (default: after the last existing child)
        notes: Optional line notes

    Returns:
        Created BomItem with parent_part and child_part loaded

    Raises:
        InvalidQuantityError: If quantity is malformed or not positive
        ValidationError: If unit/position/notes are invalid or the parts
            belong to different projects
        PartNotFound: If either part doesn't exist
        CompositionCycleError: If the edge would make a part contain itself
        DuplicateEdgeError: If the parent already lists this child
        DatabaseError: If the database operation fails
    """
    quantity_text = _parse_quantity_or_raise(quantity)
    _validate_line_fields(unit, position, notes)
    unit = unit.strip() if unit is not None else DEFAULT_UNIT
    labels: Dict[int, str] = {}

    try:
        with locked_session_scope() as session:
            parent = get_part(parent_part_id, session=session)
            child = get_part(child_part_id, session=session)
            labels[parent.id] = parent.part_number
            labels[child.id] = child.part_number

            if parent.project_id != child.project_id:
                raise ValidationError(
                    [
                        f"{child.part_number} belongs to project {child.project_id}, "
                        f"not project {parent.project_id}"
                    ]
                )

            check = can_add_edge(parent_part_id, child_part_id, session=session)
            if not check.allowed:
                path_labels = part_numbers(session, check.path)
                log_operation(
                    logger,
                    operation="add_edge",
                    outcome="cycle_rejected",
                    level=logging.WARNING,
                    parent_part_id=parent_part_id,
                    child_part_id=child_part_id,
                    cycle_path=PATH_SEPARATOR.join(path_labels),
                )
                message = None
                if check.path[-1:] != [parent_part_id]:
                    # Cycle already stored below the child
                    message = (
                        f"Cannot add {child.part_number} as child of {parent.part_number}: "
                        f"{check.reason}"
                    )
                raise CompositionCycleError(
                    parent.part_number, child.part_number, path=path_labels, message=message
                )

            existing = (
                session.query(BomItem)
                .filter_by(parent_part_id=parent_part_id, child_part_id=child_part_id)
                .first()
            )
            if existing is not None:
                log_operation(
                    logger,
                    operation="add_edge",
                    outcome="duplicate_rejected",
                    level=logging.WARNING,
                    parent_part_id=parent_part_id,
                    child_part_id=child_part_id,
                    edge_id=existing.id,
                )
                raise DuplicateEdgeError(parent.part_number, child.part_number)

            if position is None:
                max_position = (
                    session.query(func.max(BomItem.position))
                    .filter_by(parent_part_id=parent_part_id)
                    .scalar()
                )
                position = (max_position or 0) + 1

            edge = BomItem(
                parent_part_id=parent_part_id,
                child_part_id=child_part_id,
                quantity=quantity_text,
                unit=unit,
                position=position,
                notes=sanitize_string(notes),
            )
            session.add(edge)
            session.flush()
            session.refresh(edge)

            # Eager load relationships
            _ = edge.parent_part
            _ = edge.child_part

            log_operation(
                logger,
                operation="add_edge",
                outcome="success",
                edge_id=edge.id,
                parent_part_id=parent_part_id,
                child_part_id=child_part_id,
                quantity=quantity_text,
                unit=unit,
            )
            return edge

    except (PartNotFound, ValidationError, CompositionCycleError, DuplicateEdgeError):
        raise
    except IntegrityError as e:
        # UNIQUE(parent, child) lost to a writer outside this process
        raise DuplicateEdgeError(
            labels.get(parent_part_id, f"#{parent_part_id}"),
            labels.get(child_part_id, f"#{child_part_id}"),
        ) from e
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to add BOM item", e)


def remove_edge(edge_id: int) -> None:
    """
    Remove a BOM line.

    Args:
        edge_id: BomItem ID

    Raises:
        EdgeNotFoundError: If the BOM item doesn't exist
        DatabaseError: If the database operation fails
    """
    try:
        with session_scope() as session:
            edge = _get_edge(session, edge_id)
            parent_part_id = edge.parent_part_id
            child_part_id = edge.child_part_id
            session.delete(edge)

            log_operation(
                logger,
                operation="remove_edge",
                outcome="success",
                edge_id=edge_id,
                parent_part_id=parent_part_id,
                child_part_id=child_part_id,
            )

    except EdgeNotFoundError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to remove BOM item {edge_id}", e)


def update_edge(
    edge_id: int,
    quantity=None,
    unit: Optional[str] = None,
    position: Optional[int] = None,
    notes: Optional[str] = None,
) -> BomItem:
    """
    Update the quantity, unit, position or notes of a BOM line.

    The parent and child of a line cannot change; remove it and add a new
    one instead. Arguments left as None keep their current value.

    Returns:
        Updated BomItem

    Raises:
        EdgeNotFoundError: If the BOM item doesn't exist
        InvalidQuantityError: If quantity is malformed or not positive
        ValidationError: If unit/position/notes are invalid
        DatabaseError: If the database operation fails
    """
    quantity_text = _parse_quantity_or_raise(quantity) if quantity is not None else None
    _validate_line_fields(unit, position, notes)

    try:
        with session_scope() as session:
            edge = _get_edge(session, edge_id)
            changed = []

            if quantity_text is not None:
                edge.quantity = quantity_text
                changed.append("quantity")
            if unit is not None:
                edge.unit = unit.strip()
                changed.append("unit")
            if position is not None:
                edge.position = position
                changed.append("position")
            if notes is not None:
                edge.notes = sanitize_string(notes)
                changed.append("notes")

            edge.updated_at = utc_now()
            session.flush()

            _ = edge.parent_part
            _ = edge.child_part

            log_operation(
                logger,
                operation="update_edge",
                outcome="success",
                edge_id=edge_id,
                changed_fields=",".join(changed),
            )
            return edge

    except (EdgeNotFoundError, ValidationError):
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to update BOM item {edge_id}", e)


def list_children(part_id: int, session=None) -> List[BomItem]:
    """
    Get the direct BOM lines of a part.

    Args:
        part_id: Parent part ID
        session: Optional SQLAlchemy session

    Returns:
        BomItems ordered by position, then insertion order

    Raises:
        PartNotFound: If the part doesn't exist
    """
    def _impl(session):
        get_part(part_id, session=session)
        return neighbor_edges(session, part_id, Direction.DOWN)

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as session:
            return _impl(session)
    except PartNotFound:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to list BOM items of part {part_id}", e)


def list_parents(part_id: int, session=None) -> List[BomItem]:
    """
    Get the BOM lines that use a part directly, ordered by parent part number.

    Raises:
        PartNotFound: If the part doesn't exist
    """
    def _impl(session):
        get_part(part_id, session=session)
        return neighbor_edges(session, part_id, Direction.UP)

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as session:
            return _impl(session)
    except PartNotFound:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to list parents of part {part_id}", e)


def reorder_children(parent_part_id: int, edge_ids: List[int]) -> List[BomItem]:
    """
    Rewrite sibling positions of a parent's BOM lines.

    Args:
        parent_part_id: Parent part ID
        edge_ids: Every BomItem id of the parent, in the desired order

    Returns:
        The parent's BomItems in their new order (positions 0..n-1)

    Raises:
        PartNotFound: If the parent doesn't exist
        ValidationError: If edge_ids is not exactly the parent's BOM lines
    """
    try:
        with session_scope() as session:
            get_part(parent_part_id, session=session)
            edges = session.query(BomItem).filter(BomItem.parent_part_id == parent_part_id).all()
            edges_by_id = {edge.id: edge for edge in edges}

            unknown = [edge_id for edge_id in edge_ids if edge_id not in edges_by_id]
            if unknown:
                raise ValidationError(
                    [f"BOM item {edge_id} is not a line of part {parent_part_id}" for edge_id in unknown]
                )
            if len(edge_ids) != len(set(edge_ids)) or set(edge_ids) != set(edges_by_id):
                raise ValidationError(
                    ["New order must list every BOM item of the part exactly once"]
                )

            for index, edge_id in enumerate(edge_ids):
                edges_by_id[edge_id].position = index
            session.flush()

            log_operation(
                logger,
                operation="reorder_children",
                outcome="success",
                parent_part_id=parent_part_id,
                edge_count=len(edge_ids),
            )
            return [edges_by_id[edge_id] for edge_id in edge_ids]

    except (PartNotFound, ValidationError):
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to reorder BOM items of part {parent_part_id}", e)


# ============================================================================
# Hierarchy queries
# ============================================================================


def build_part_tree(root_part_id: int, max_depth: Optional[int] = None, session=None) -> BomTreeNode:
    """
    Expand a stored part into its multi-level BOM tree.

    Args:
        root_part_id: Part to expand
        max_depth: Depth bound (default: configured max_bom_depth)
        session: Optional SQLAlchemy session

    Returns:
        Root BomTreeNode

    Raises:
        PartNotFound: If the root part doesn't exist
        MaxDepthExceededError: If the stored BOM is deeper than max_depth
        InvalidQuantityError: If a stored quantity cannot be parsed
    """
    depth = _resolve_max_depth(max_depth)

    def _impl(session):
        root = get_part(root_part_id, session=session)

        def load_children(part_id: int) -> List[ChildLink]:
            return [_child_link(edge) for edge in neighbor_edges(session, part_id, Direction.DOWN)]

        try:
            tree = build_tree(PartRef.from_part(root), load_children, max_depth=depth)
        except MaxDepthExceededError as e:
            log_operation(
                logger,
                operation="build_tree",
                outcome="max_depth_exceeded",
                level=logging.ERROR,
                root_part_id=root_part_id,
                part_id=e.part_id,
                max_depth=depth,
            )
            raise

        log_operation(
            logger,
            operation="build_tree",
            outcome="success",
            level=logging.DEBUG,
            root_part_id=root_part_id,
        )
        return tree

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as session:
            return _impl(session)
    except (PartNotFound, MaxDepthExceededError, ValidationError):
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to build BOM tree for part {root_part_id}", e)


def get_tree(part_id: int, max_depth: Optional[int] = None) -> BomTreeResult:
    """
    Get the full BOM of a part as a nested tree and a flat list.

    Args:
        part_id: Root part ID
        max_depth: Depth bound (default: configured max_bom_depth)

    Returns:
        BomTreeResult

    Raises:
        PartNotFound: If the part doesn't exist
        MaxDepthExceededError: If the stored BOM is deeper than max_depth
    """
    tree = build_part_tree(part_id, max_depth=max_depth)
    flat = flatten(tree)
    return BomTreeResult(
        root_part=tree.part,
        tree=tree,
        flat_list=flat.items,
        total_parts=flat.total_parts,
        max_level=flat.max_level,
    )


def get_rolled_up_quantities(part_id: int, build_quantity=1) -> List[RolledUpQuantity]:
    """
    Total requirement of every part needed to build a part.

    Occurrences of the same part (and unit) along different paths are
    summed, then multiplied by build_quantity.
    """
    factor = Decimal(_parse_quantity_or_raise(build_quantity))
    return rollup_quantities(build_part_tree(part_id), build_quantity=factor)


def where_used(part_id: int, max_depth: Optional[int] = None, session=None) -> WhereUsedResult:
    """
    Find every assembly that contains a part, directly or through sub-assemblies.

    Walks child -> parent edges with the same traversal the cycle guard
    uses. Each distinct path up from the part yields one entry per ancestor
    on it, so an assembly reached along two routes appears twice with
    different paths. Entries come in depth-first order: a direct parent,
    then that parent's ancestors, then the next direct parent.

    Args:
        part_id: Part to look up
        max_depth: Depth bound (default: configured max_bom_depth)
        session: Optional SQLAlchemy session

    Returns:
        WhereUsedResult (empty parents list if the part is used nowhere)

    Raises:
        PartNotFound: If the part doesn't exist
        MaxDepthExceededError: If an upward path is longer than max_depth
    """
    depth = _resolve_max_depth(max_depth)

    def _impl(session):
        part = get_part(part_id, session=session)
        labels = {part.id: part.part_number}
        entries = []

        try:
            for step in iter_paths(session, part_id, Direction.UP, max_depth=depth):
                edge = step.edge
                ancestor = edge.parent_part
                labels[ancestor.id] = ancestor.part_number
                entries.append(
                    WhereUsedEntry(
                        part_id=ancestor.id,
                        part_number=ancestor.part_number,
                        name=ancestor.name,
                        quantity=edge.quantity_decimal,
                        unit=edge.unit,
                        path=PATH_SEPARATOR.join(labels[pid] for pid in reversed(step.path)),
                        level=step.depth,
                        child_part_id=edge.child_part_id,
                    )
                )
        except MaxDepthExceededError as e:
            log_operation(
                logger,
                operation="where_used",
                outcome="max_depth_exceeded",
                level=logging.ERROR,
                part_id=part_id,
                ancestor_part_id=e.part_id,
                max_depth=depth,
            )
            raise

        log_operation(
            logger,
            operation="where_used",
            outcome="success",
            level=logging.DEBUG,
            part_id=part_id,
            parent_count=len(entries),
        )
        return WhereUsedResult(part=PartRef.from_part(part), parents=entries)

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as session:
            return _impl(session)
    except (PartNotFound, MaxDepthExceededError):
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to resolve where-used for part {part_id}", e)


def check_bom_integrity(root_part_id: int, max_depth: Optional[int] = None) -> dict:
    """
    Check the stored BOM below a part for structural problems.

    Detects cycles (which the service layer never writes but a direct
    database edit could), unparseable or non-positive stored quantities and
    BOMs deeper than the depth bound. Nothing is raised for these; they are
    collected into the report.

    Args:
        root_part_id: Part whose BOM to check
        max_depth: Depth bound (default: configured max_bom_depth)

    Returns:
        Dictionary with:
        - root_part_id: int
        - is_valid: bool
        - issues: list of issue descriptions
        - issues_count: int
        - edges_checked: int
        - max_level: deepest level reached (None if the tree could not be built)
        - checked_at: ISO timestamp

    Raises:
        PartNotFound: If the root part doesn't exist
    """
    depth = _resolve_max_depth(max_depth)
    issues = []
    edges_checked = 0
    max_level = None

    try:
        with session_scope() as session:
            get_part(root_part_id, session=session)

            has_cycle = False
            try:
                for step in iter_paths(session, root_part_id, Direction.DOWN, prune_visited=True):
                    edges_checked += 1
                    edge = step.edge
                    try:
                        parse_quantity(edge.quantity)
                    except ValueError as e:
                        issues.append(
                            f"BOM item {edge.id} ({edge.parent_part.part_number} -> "
                            f"{edge.child_part.part_number}) has invalid quantity "
                            f"'{edge.quantity}': {e}"
                        )
            except CycleDetected as e:
                has_cycle = True
                issues.append(
                    f"Cycle detected: {PATH_SEPARATOR.join(part_numbers(session, e.path))}"
                )

            if not has_cycle and not issues:
                try:
                    tree = build_part_tree(root_part_id, max_depth=depth, session=session)
                    max_level = flatten(tree).max_level
                except MaxDepthExceededError as e:
                    issues.append(str(e))

    except PartNotFound:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to check BOM integrity for part {root_part_id}", e)

    report = {
        "root_part_id": root_part_id,
        "is_valid": not issues,
        "issues": issues,
        "issues_count": len(issues),
        "edges_checked": edges_checked,
        "max_level": max_level,
        "checked_at": utc_now().isoformat(),
    }

    log_operation(
        logger,
        operation="check_bom_integrity",
        outcome="valid" if report["is_valid"] else "issues_found",
        level=logging.INFO if report["is_valid"] else logging.WARNING,
        root_part_id=root_part_id,
        issues_count=len(issues),
    )
    return report


# Names used by the surrounding application
add_bom_item = add_edge
remove_bom_item = remove_edge
update_bom_item = update_edge
