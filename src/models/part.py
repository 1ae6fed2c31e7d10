"""
Part model for the part registry.

A Part is one identifiable item in a project's catalog (an assembly, a
sub-assembly or a purchased component). Parts are connected into
Bills of Materials through BomItem rows.
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Enum,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import BaseModel
from .enums import PartStatus


class Part(BaseModel):
    """
    Part model representing one catalog entry within a project.

    Attributes:
        project_id: Owning project (projects live outside this engine)
        part_number: Human-facing identifier, unique within the project
        name: Display name
        description: Optional long description
        category: Optional grouping (e.g., "Fastener", "PCB")
        status: Lifecycle status (draft, active, obsolete)
        current_revision_id: Pointer to the current revision record, if any
    """

    __tablename__ = "parts"

    project_id = Column(Integer, nullable=False, index=True)
    part_number = Column(String(50), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    status = Column(Enum(PartStatus), nullable=False, default=PartStatus.DRAFT)
    current_revision_id = Column(Integer, nullable=True)

    # BOM relationships (edges where this part is the parent / the child)
    child_items = relationship(
        "BomItem",
        foreign_keys="BomItem.parent_part_id",
        back_populates="parent_part",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="select",
    )
    parent_items = relationship(
        "BomItem",
        foreign_keys="BomItem.child_part_id",
        back_populates="child_part",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="select",
    )

    __table_args__ = (
        UniqueConstraint("project_id", "part_number", name="uq_part_project_part_number"),
        Index("idx_part_part_number", "part_number"),
        Index("idx_part_status", "status"),
    )

    @property
    def display_name(self) -> str:
        """Part number and name, as shown in pickers and breadcrumbs."""
        return f"{self.part_number} - {self.name}"

    @property
    def is_obsolete(self) -> bool:
        return self.status == PartStatus.OBSOLETE

    def to_dict(self, include_relationships: bool = False) -> dict:
        """
        Convert part to dictionary.

        Args:
            include_relationships: If True, include BOM edge counts

        Returns:
            Dictionary representation
        """
        result = super().to_dict(include_relationships=False)
        result["display_name"] = self.display_name

        if include_relationships:
            result["bom_item_count"] = len(self.child_items)
            result["where_used_count"] = len(self.parent_items)

        return result
