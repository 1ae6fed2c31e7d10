"""
Database models package.

This package contains the SQLAlchemy ORM models for the part registry and
the Bill-of-Materials edge store.
"""

from .base import Base, BaseModel
from .enums import PartStatus
from .part import Part
from .bom_item import BomItem

__all__ = [
    "Base",
    "BaseModel",
    "PartStatus",
    "Part",
    "BomItem",
]
