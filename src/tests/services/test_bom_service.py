"""Tests for the BOM edge store (add/update/remove/list/reorder).

Covers:
- add_edge validation, defaults and the cycle guard
- Duplicate pair rejection
- update_edge / remove_edge / reorder_children
- list_children and list_parents ordering
- Cascade removal of BOM items with their parts
"""

from decimal import Decimal

import pytest

from src.models import BomItem
from src.services import bom_service, part_service
from src.services.exceptions import (
    CompositionCycleError,
    DuplicateEdgeError,
    EdgeNotFoundError,
    InvalidQuantityError,
    PartNotFound,
    ValidationError,
)


class TestAddEdge:
    """Tests for add_edge()."""

    def test_add_edge_creates_bom_item(self, make_part):
        """Adding an edge stores quantity text, unit and loads both parts."""
        asm = make_part("ASM-1")
        screw = make_part("SCR-1")

        edge = bom_service.add_edge(asm.id, screw.id, "4", unit="EA", notes="  torque 2Nm ")

        assert edge.id is not None
        assert edge.parent_part_id == asm.id
        assert edge.child_part_id == screw.id
        assert edge.quantity == "4"
        assert edge.quantity_decimal == Decimal("4")
        assert edge.unit == "EA"
        assert edge.notes == "torque 2Nm"
        assert edge.parent_part.part_number == "ASM-1"
        assert edge.child_part.part_number == "SCR-1"

    def test_add_bom_item_alias(self, make_part):
        """add_bom_item is the same operation as add_edge."""
        asm = make_part("ASM-1")
        screw = make_part("SCR-1")

        edge = bom_service.add_bom_item(asm.id, screw.id, 1)

        assert edge.unit == "EA"
        assert bom_service.add_bom_item is bom_service.add_edge

    def test_numeric_quantities_are_stored_as_text(self, make_part):
        """int, Decimal and float quantities are stored without float error."""
        asm = make_part("ASM-1")
        a, b, c = make_part("A"), make_part("B"), make_part("C")

        assert bom_service.add_edge(asm.id, a.id, 3).quantity == "3"
        assert bom_service.add_edge(asm.id, b.id, Decimal("0.125")).quantity == "0.125"
        assert bom_service.add_edge(asm.id, c.id, 0.1).quantity == "0.1"

    def test_default_position_appends_after_siblings(self, make_part):
        """Without a position, a new line goes after the existing children."""
        asm = make_part("ASM-1")
        a, b, c = make_part("A"), make_part("B"), make_part("C")

        first = bom_service.add_edge(asm.id, a.id, 1)
        second = bom_service.add_edge(asm.id, b.id, 1, position=10)
        third = bom_service.add_edge(asm.id, c.id, 1)

        assert first.position == 1
        assert second.position == 10
        assert third.position == 11

    @pytest.mark.parametrize("quantity", ["0", "-2", "abc", "", "1e3", "1.1234567", 0, None, True])
    def test_invalid_quantity_raises(self, make_part, quantity):
        """Malformed, zero and negative quantities are rejected."""
        asm = make_part("ASM-1")
        screw = make_part("SCR-1")

        with pytest.raises(InvalidQuantityError):
            bom_service.add_edge(asm.id, screw.id, quantity)

    def test_invalid_quantity_is_a_validation_error(self, make_part):
        """InvalidQuantityError can be handled as a ValidationError."""
        asm = make_part("ASM-1")
        screw = make_part("SCR-1")

        with pytest.raises(ValidationError) as exc_info:
            bom_service.add_edge(asm.id, screw.id, "-1")

        assert exc_info.value.quantity == "-1"

    def test_blank_unit_raises(self, make_part):
        asm = make_part("ASM-1")
        screw = make_part("SCR-1")

        with pytest.raises(ValidationError):
            bom_service.add_edge(asm.id, screw.id, 1, unit="  ")

    def test_negative_position_raises(self, make_part):
        asm = make_part("ASM-1")
        screw = make_part("SCR-1")

        with pytest.raises(ValidationError):
            bom_service.add_edge(asm.id, screw.id, 1, position=-1)

    def test_unknown_parent_raises(self, make_part):
        screw = make_part("SCR-1")

        with pytest.raises(PartNotFound) as exc_info:
            bom_service.add_edge(99999, screw.id, 1)

        assert exc_info.value.part_id == 99999

    def test_unknown_child_raises(self, make_part):
        asm = make_part("ASM-1")

        with pytest.raises(PartNotFound):
            bom_service.add_edge(asm.id, 99999, 1)

    def test_parts_from_different_projects_raise(self, make_part):
        """A BOM never spans projects."""
        asm = make_part("ASM-1", project_id=1)
        foreign = make_part("SCR-1", project_id=2)

        with pytest.raises(ValidationError, match="project"):
            bom_service.add_edge(asm.id, foreign.id, 1)

    def test_self_reference_raises_cycle_error(self, make_part):
        """addEdge(A, A) is always a cycle."""
        a = make_part("A")

        with pytest.raises(CompositionCycleError) as exc_info:
            bom_service.add_edge(a.id, a.id, 1)

        assert "itself" in str(exc_info.value)

    def test_reverse_edge_raises_cycle_error(self, make_part):
        """addEdge(A, B) then addEdge(B, A) fails on the second call."""
        a = make_part("A")
        b = make_part("B")
        bom_service.add_edge(a.id, b.id, 1)

        with pytest.raises(CompositionCycleError) as exc_info:
            bom_service.add_edge(b.id, a.id, 1)

        assert exc_info.value.path == ["A", "B"]

    def test_leaf_to_root_raises_cycle_error(self, rxyz_bom):
        """Z -> R closes R -> X -> Z; the error names the existing path."""
        with pytest.raises(CompositionCycleError) as exc_info:
            bom_service.add_edge(rxyz_bom.z.id, rxyz_bom.r.id, 1, unit="ea")

        error = exc_info.value
        assert error.parent_part_number == "Z"
        assert error.child_part_number == "R"
        assert error.path == ["R", "X", "Z"]
        assert "R/X/Z" in str(error)

    def test_rejected_cycle_is_not_stored(self, rxyz_bom, test_db):
        with pytest.raises(CompositionCycleError):
            bom_service.add_edge(rxyz_bom.z.id, rxyz_bom.r.id, 1)

        session = test_db()
        assert session.query(BomItem).count() == 3

    def test_diamond_is_allowed(self, make_part):
        """Sharing a component between two sub-assemblies is not a cycle."""
        top, left, right, shared = (make_part(pn) for pn in ("TOP", "L", "R", "S"))
        bom_service.add_edge(top.id, left.id, 1)
        bom_service.add_edge(top.id, right.id, 1)
        bom_service.add_edge(left.id, shared.id, 2)

        edge = bom_service.add_edge(right.id, shared.id, 3)

        assert edge.child_part_id == shared.id

    def test_duplicate_pair_raises(self, make_part):
        """A second line for the same parent/child pair is rejected."""
        a = make_part("A")
        b = make_part("B")
        bom_service.add_edge(a.id, b.id, 1)

        with pytest.raises(DuplicateEdgeError) as exc_info:
            bom_service.add_edge(a.id, b.id, 2)

        assert exc_info.value.parent_part_number == "A"
        assert exc_info.value.child_part_number == "B"


class TestUpdateEdge:
    """Tests for update_edge()."""

    def test_update_quantity_and_unit(self, rxyz_bom):
        edge = bom_service.update_edge(rxyz_bom.r_x.id, quantity="2.5", unit="kg")

        assert edge.quantity == "2.5"
        assert edge.unit == "kg"
        assert edge.position == rxyz_bom.r_x.position

    def test_update_keeps_unspecified_fields(self, rxyz_bom):
        edge = bom_service.update_edge(rxyz_bom.x_z.id, notes="Use thread lock")

        assert edge.quantity == "5"
        assert edge.notes == "Use thread lock"

    def test_update_invalid_quantity_raises(self, rxyz_bom):
        with pytest.raises(InvalidQuantityError):
            bom_service.update_edge(rxyz_bom.r_x.id, quantity="0")

    def test_update_missing_edge_raises(self, test_db):
        with pytest.raises(EdgeNotFoundError) as exc_info:
            bom_service.update_bom_item(424242, quantity=1)

        assert exc_info.value.edge_id == 424242


class TestRemoveEdge:
    """Tests for remove_edge()."""

    def test_remove_edge(self, rxyz_bom):
        bom_service.remove_edge(rxyz_bom.r_y.id)

        children = bom_service.list_children(rxyz_bom.r.id)
        assert [edge.child_part.part_number for edge in children] == ["X"]

    def test_remove_missing_edge_raises(self, test_db):
        with pytest.raises(EdgeNotFoundError):
            bom_service.remove_bom_item(424242)

    def test_removed_edge_can_be_re_added(self, rxyz_bom):
        bom_service.remove_edge(rxyz_bom.x_z.id)

        edge = bom_service.add_edge(rxyz_bom.x.id, rxyz_bom.z.id, 6)

        assert edge.quantity == "6"

    def test_remove_breaks_cycle_path(self, rxyz_bom):
        """After X -> Z is removed, Z -> R no longer closes a cycle."""
        bom_service.remove_edge(rxyz_bom.x_z.id)

        edge = bom_service.add_edge(rxyz_bom.z.id, rxyz_bom.r.id, 1)

        assert edge.parent_part_id == rxyz_bom.z.id


class TestListing:
    """Tests for list_children(), list_parents() and reorder_children()."""

    def test_list_children_ordered_by_position(self, make_part):
        asm = make_part("ASM")
        a, b, c = make_part("A"), make_part("B"), make_part("C")
        bom_service.add_edge(asm.id, a.id, 1, position=3)
        bom_service.add_edge(asm.id, b.id, 1, position=1)
        bom_service.add_edge(asm.id, c.id, 1, position=3)

        children = bom_service.list_children(asm.id)

        # Ties keep insertion order
        assert [edge.child_part.part_number for edge in children] == ["B", "A", "C"]

    def test_list_children_of_leaf_is_empty(self, rxyz_bom):
        assert bom_service.list_children(rxyz_bom.z.id) == []

    def test_list_children_unknown_part_raises(self, test_db):
        with pytest.raises(PartNotFound):
            bom_service.list_children(99999)

    def test_list_parents_ordered_by_part_number(self, make_part):
        shared = make_part("S")
        zeta, alpha = make_part("ZETA"), make_part("ALPHA")
        bom_service.add_edge(zeta.id, shared.id, 1)
        bom_service.add_edge(alpha.id, shared.id, 2)

        parents = bom_service.list_parents(shared.id)

        assert [edge.parent_part.part_number for edge in parents] == ["ALPHA", "ZETA"]

    def test_reorder_children(self, rxyz_bom):
        edges = bom_service.reorder_children(rxyz_bom.r.id, [rxyz_bom.r_y.id, rxyz_bom.r_x.id])

        assert [edge.position for edge in edges] == [0, 1]
        children = bom_service.list_children(rxyz_bom.r.id)
        assert [edge.child_part.part_number for edge in children] == ["Y", "X"]

    def test_reorder_requires_every_child(self, rxyz_bom):
        with pytest.raises(ValidationError):
            bom_service.reorder_children(rxyz_bom.r.id, [rxyz_bom.r_y.id])

    def test_reorder_rejects_foreign_edge(self, rxyz_bom):
        with pytest.raises(ValidationError):
            bom_service.reorder_children(
                rxyz_bom.r.id, [rxyz_bom.r_x.id, rxyz_bom.r_y.id, rxyz_bom.x_z.id]
            )


class TestCascade:
    """Deleting a part removes the BOM lines that reference it."""

    def test_delete_child_part_removes_edge(self, rxyz_bom, test_db):
        assert part_service.delete_part(rxyz_bom.z.id) is True

        session = test_db()
        assert session.query(BomItem).filter_by(child_part_id=rxyz_bom.z.id).count() == 0
        assert session.query(BomItem).count() == 2

    def test_delete_parent_part_removes_edges(self, rxyz_bom, test_db):
        part_service.delete_part(rxyz_bom.r.id)

        session = test_db()
        remaining = session.query(BomItem).all()
        assert [(e.parent_part_id, e.child_part_id) for e in remaining] == [
            (rxyz_bom.x.id, rxyz_bom.z.id)
        ]
