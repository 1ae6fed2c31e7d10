"""
BOM tree building, quantity rollup and flattening.

Everything in this module is pure: it works on PartRef snapshots and
ChildLink records handed in by the caller, never on a database session.
bom_service wires it to the persisted BomItem edges.

Quantities are Decimal throughout. Each node's total is its edge quantity
times its parent's total (root = 1), so a part reached along two different
paths keeps two independent totals.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from src.services.exceptions import MaxDepthExceededError
from src.utils.constants import DEFAULT_UNIT, MAX_BOM_DEPTH, PATH_SEPARATOR

ONE = Decimal("1")


@dataclass(frozen=True)
class PartRef:
    """Snapshot of the part fields a BOM tree needs."""

    id: int
    part_number: str
    name: str
    category: Optional[str] = None
    status: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_part(cls, part) -> "PartRef":
        status = part.status
        return cls(
            id=part.id,
            part_number=part.part_number,
            name=part.name,
            category=part.category,
            status=status.value if hasattr(status, "value") else status,
            description=part.description,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "part_number": self.part_number,
            "name": self.name,
            "category": self.category,
            "status": self.status,
            "description": self.description,
        }


@dataclass(frozen=True)
class ChildLink:
    """
    One BOM line as seen by the tree builder.

    Attributes:
        edge_id: BomItem id
        part: The child part
        quantity: Child quantity per one parent
        unit: Unit of measure
        position: Sibling order (lower = earlier)
        notes: Optional line notes
    """

    edge_id: int
    part: PartRef
    quantity: Decimal
    unit: str = DEFAULT_UNIT
    position: int = 0
    notes: Optional[str] = None


@dataclass
class BomTreeNode:
    """
    One occurrence of a part in an expanded BOM.

    Attributes:
        part: Part snapshot
        level: Distance from the root (root = 0)
        quantity_at_level: Edge quantity from the immediate parent (root = 1)
        total_quantity: quantity_at_level multiplied along the path from root
        unit: Unit of quantity_at_level
        path: Part numbers from the root to this node, '/'-joined
        edge_id: BomItem id that produced this node (None for the root)
        position: Sibling position (None for the root)
        notes: BOM line notes
        children: Child nodes in sibling order
    """

    part: PartRef
    level: int
    quantity_at_level: Decimal
    total_quantity: Decimal
    unit: str
    path: str
    edge_id: Optional[int] = None
    position: Optional[int] = None
    notes: Optional[str] = None
    children: List["BomTreeNode"] = field(default_factory=list)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def iter_nodes(self) -> Iterator["BomTreeNode"]:
        """Yield this node and all descendants in pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def to_dict(self) -> dict:
        return {
            "part": self.part.to_dict(),
            "level": self.level,
            "quantity_at_level": str(self.quantity_at_level),
            "total_quantity": str(self.total_quantity),
            "unit": self.unit,
            "path": self.path,
            "edge_id": self.edge_id,
            "position": self.position,
            "notes": self.notes,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True)
class FlatBomItem:
    """One row of a flattened (indented) BOM."""

    level: int
    path: str
    part_id: int
    part_number: str
    name: str
    category: Optional[str]
    quantity: Decimal
    unit: str
    status: Optional[str]
    total_quantity: Decimal
    position: Optional[int] = None
    notes: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "level": self.level,
            "path": self.path,
            "part_id": self.part_id,
            "part_number": self.part_number,
            "name": self.name,
            "category": self.category,
            "quantity": str(self.quantity),
            "unit": self.unit,
            "status": self.status,
            "total_quantity": str(self.total_quantity),
            "position": self.position,
            "notes": self.notes,
        }


@dataclass
class FlatBom:
    """
    Pre-order flat list of a BOM tree plus summary counts.

    Attributes:
        items: One FlatBomItem per tree node, root first
        total_parts: Number of distinct parts in the tree (root included)
        max_level: Deepest level reached
    """

    items: List[FlatBomItem]
    total_parts: int
    max_level: int

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[FlatBomItem]:
        return iter(self.items)


@dataclass
class RolledUpQuantity:
    """Summed requirement of one part (in one unit) across all its occurrences."""

    part_id: int
    part_number: str
    name: str
    unit: str
    total_quantity: Decimal
    occurrences: int

    def to_dict(self) -> dict:
        return {
            "part_id": self.part_id,
            "part_number": self.part_number,
            "name": self.name,
            "unit": self.unit,
            "total_quantity": str(self.total_quantity),
            "occurrences": self.occurrences,
        }


def _sibling_order(link: ChildLink) -> int:
    return link.position if link.position is not None else 0


def build_tree(
    root: PartRef,
    load_children: Callable[[int], Sequence[ChildLink]],
    max_depth: int = MAX_BOM_DEPTH,
) -> BomTreeNode:
    """
    Expand a part into its full multi-level BOM.

    Children are expanded depth-first. Siblings are ordered by position;
    ties keep the order load_children returned them in. Every occurrence of
    a part gets its own node, so diamond-shaped BOMs are expanded once per
    path.

    Args:
        root: Part to expand
        load_children: Returns the ChildLinks of a part id
        max_depth: Deepest level a node may have

    Returns:
        Root BomTreeNode (level 0, quantity 1)

    Raises:
        MaxDepthExceededError: If any node would sit below max_depth. The
            tree is never silently truncated.
    """
    root_node = BomTreeNode(
        part=root,
        level=0,
        quantity_at_level=ONE,
        total_quantity=ONE,
        unit=DEFAULT_UNIT,
        path=root.part_number,
    )

    # Explicit stack so a cyclic load_children hits max_depth, not the
    # interpreter recursion limit
    stack = [(root_node, (root.part_number,))]
    while stack:
        node, lineage = stack.pop()
        links = sorted(load_children(node.part.id), key=_sibling_order)
        for link in links:
            child_level = node.level + 1
            child_lineage = lineage + (link.part.part_number,)
            if child_level > max_depth:
                raise MaxDepthExceededError(link.part.id, max_depth, path=child_lineage)

            child = BomTreeNode(
                part=link.part,
                level=child_level,
                quantity_at_level=link.quantity,
                total_quantity=link.quantity * node.total_quantity,
                unit=link.unit,
                path=PATH_SEPARATOR.join(child_lineage),
                edge_id=link.edge_id,
                position=link.position,
                notes=link.notes,
            )
            node.children.append(child)

        # Reversed so the first sibling is expanded first (pre-order)
        for child in reversed(node.children):
            stack.append((child, lineage + (child.part.part_number,)))

    return root_node


def flatten(tree: BomTreeNode) -> FlatBom:
    """
    Flatten a BOM tree into pre-order rows (root, then each child subtree).

    Args:
        tree: Root node from build_tree()

    Returns:
        FlatBom with one item per node
    """
    items = []
    part_ids = set()
    max_level = 0

    for node in tree.iter_nodes():
        part_ids.add(node.part.id)
        max_level = max(max_level, node.level)
        items.append(
            FlatBomItem(
                level=node.level,
                path=node.path,
                part_id=node.part.id,
                part_number=node.part.part_number,
                name=node.part.name,
                category=node.part.category,
                quantity=node.quantity_at_level,
                unit=node.unit,
                status=node.part.status,
                total_quantity=node.total_quantity,
                position=node.position,
                notes=node.notes,
            )
        )

    return FlatBom(items=items, total_parts=len(part_ids), max_level=max_level)


def rollup_quantities(
    tree: BomTreeNode, build_quantity: Union[int, Decimal] = 1
) -> List[RolledUpQuantity]:
    """
    Sum the total requirement of every part below the root.

    Occurrences of the same part are added together per unit, so a screw
    used 4x in one sub-assembly and 2x in another rolls up to 6. The result
    is multiplied by build_quantity (how many roots are being built).

    Args:
        tree: Root node from build_tree()
        build_quantity: Number of root assemblies

    Returns:
        One RolledUpQuantity per (part, unit), in order of first appearance
    """
    factor = Decimal(build_quantity)
    rollup: Dict[Tuple[int, str], RolledUpQuantity] = {}

    for node in tree.iter_nodes():
        if node.level == 0:
            continue
        key = (node.part.id, node.unit)
        entry = rollup.get(key)
        if entry is None:
            rollup[key] = RolledUpQuantity(
                part_id=node.part.id,
                part_number=node.part.part_number,
                name=node.part.name,
                unit=node.unit,
                total_quantity=node.total_quantity * factor,
                occurrences=1,
            )
        else:
            entry.total_quantity += node.total_quantity * factor
            entry.occurrences += 1

    return list(rollup.values())


def total_quantity_of(tree: BomTreeNode, part_id: int) -> Decimal:
    """Summed total quantity of one part over all its occurrences (0 if absent)."""
    return sum(
        (node.total_quantity for node in tree.iter_nodes() if node.part.id == part_id),
        Decimal("0"),
    )


def filter_flat_items(
    items: Iterable[FlatBomItem],
    query: Optional[str] = None,
    statuses: Optional[Iterable[str]] = None,
    categories: Optional[Iterable[str]] = None,
) -> List[FlatBomItem]:
    """
    Filter flat BOM rows.

    Args:
        items: Rows from flatten()
        query: Case-insensitive substring of part number or name
        statuses: Keep only these part statuses
        categories: Keep only these categories

    Returns:
        Matching rows, in their original order
    """
    needle = query.strip().lower() if query and query.strip() else None
    status_set = {str(getattr(s, "value", s)).lower() for s in statuses} if statuses else None
    category_set = set(categories) if categories else None

    result = []
    for item in items:
        if needle and needle not in item.part_number.lower() and needle not in item.name.lower():
            continue
        if status_set is not None and (item.status or "").lower() not in status_set:
            continue
        if category_set is not None and item.category not in category_set:
            continue
        result.append(item)
    return result
