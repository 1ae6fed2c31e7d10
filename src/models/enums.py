"""
Enumerations for part management.

This module contains enums used by the part registry and BOM engine:
- PartStatus: Lifecycle status of a part
"""

from enum import Enum


class PartStatus(str, Enum):
    """
    Part lifecycle status.

    Status transitions are driven by the change-order workflow; the BOM
    engine only reads this attribute.

    Values:
        DRAFT: Part is being defined and may still change freely
        ACTIVE: Part is released for use in assemblies
        OBSOLETE: Part is retired and should not be used in new designs
    """

    DRAFT = "draft"
    ACTIVE = "active"
    OBSOLETE = "obsolete"

    @classmethod
    def from_string(cls, value: str) -> "PartStatus":
        """Look up a status by its value, case-insensitively."""
        try:
            return cls(value.strip().lower())
        except (ValueError, AttributeError):
            valid = ", ".join(s.value for s in cls)
            raise ValueError(f"Invalid part status '{value}'. Expected one of: {valid}")
