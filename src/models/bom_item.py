"""
BomItem model - one parent/child composition edge of a Bill of Materials.

"parent_part contains quantity x unit of child_part at position P".

Quantities are stored as strings and parsed into Decimal by the service
layer so user-entered fractional values (e.g. "0.125") are never rounded
through binary floating point.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    ForeignKey,
    Index,
    CheckConstraint,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import BaseModel
from src.utils.constants import DEFAULT_UNIT


class BomItem(BaseModel):
    """
    Junction table linking a parent part to one of its child parts.

    Attributes:
        parent_part_id: Foreign key to the containing (assembly) Part
        child_part_id: Foreign key to the contained Part
        quantity: Positive decimal string, per one unit of the parent
        unit: Unit of measure for quantity (default "EA")
        position: Sibling display order within the parent (lower = earlier)
        notes: Optional notes for this BOM line
    """

    __tablename__ = "bom_items"

    parent_part_id = Column(
        Integer, ForeignKey("parts.id", ondelete="CASCADE"), nullable=False
    )
    child_part_id = Column(
        Integer, ForeignKey("parts.id", ondelete="CASCADE"), nullable=False
    )

    quantity = Column(String(20), nullable=False, default="1")
    unit = Column(String(20), nullable=False, default=DEFAULT_UNIT)
    position = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)

    parent_part = relationship(
        "Part",
        foreign_keys=[parent_part_id],
        back_populates="child_items",
        lazy="joined",
    )
    child_part = relationship(
        "Part",
        foreign_keys=[child_part_id],
        back_populates="parent_items",
        lazy="joined",
    )

    __table_args__ = (
        CheckConstraint(
            "parent_part_id != child_part_id",
            name="ck_bom_item_no_self_reference",
        ),
        CheckConstraint("position >= 0", name="ck_bom_item_position_non_negative"),
        UniqueConstraint(
            "parent_part_id",
            "child_part_id",
            name="uq_bom_item_parent_child",
        ),
        # Parent lookups drive tree queries, child lookups drive where-used
        Index("idx_bom_item_parent", "parent_part_id"),
        Index("idx_bom_item_child", "child_part_id"),
        Index("idx_bom_item_parent_position", "parent_part_id", "position"),
    )

    def __repr__(self) -> str:
        """String representation of BOM item."""
        return (
            f"BomItem(id={self.id}, parent_part_id={self.parent_part_id}, "
            f"child_part_id={self.child_part_id}, quantity={self.quantity} {self.unit})"
        )

    @property
    def quantity_decimal(self) -> Optional[Decimal]:
        """Stored quantity as a Decimal, or None if the stored text is unparseable."""
        try:
            return Decimal(self.quantity)
        except (InvalidOperation, TypeError):
            return None

    def to_dict(self, include_relationships: bool = False) -> dict:
        """
        Convert BOM item to dictionary.

        Args:
            include_relationships: If True, include parent and child part details

        Returns:
            Dictionary representation
        """
        result = super().to_dict(include_relationships=False)

        if self.child_part is not None:
            result["child_part_number"] = self.child_part.part_number
        if self.parent_part is not None:
            result["parent_part_number"] = self.parent_part.part_number

        if include_relationships:
            result["parent_part"] = self.parent_part.to_dict() if self.parent_part else None
            result["child_part"] = self.child_part.to_dict() if self.child_part else None

        return result
