"""
Constants for the PLM Bill-of-Materials engine.

This module defines system-wide constants including:
- Application metadata
- BOM defaults (unit, depth bound, path separator)
- Quantity format limits
- Field length limits
- CSV export layout
"""

from typing import List

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "PLM BOM Engine"
APP_VERSION = "0.1.0"
DATABASE_FILENAME = "plm.db"
DATABASE_VERSION = "1.0"

# ============================================================================
# BOM Defaults
# ============================================================================

# Unit used when a BOM line does not name one ("each")
DEFAULT_UNIT = "EA"

# Deepest level a tree or where-used walk may reach before it is treated as
# an undetected cycle
MAX_BOM_DEPTH = 50

# Separator for occurrence paths ("ASM-100/SUB-200/PN-300")
PATH_SEPARATOR = "/"

# ============================================================================
# Quantity Format
# ============================================================================

# Stored column width for quantity strings
MAX_QUANTITY_LENGTH = 20

# Fractional digits accepted on a BOM quantity (e.g. "0.125")
MAX_QUANTITY_DECIMAL_PLACES = 6

# ============================================================================
# Field Lengths
# ============================================================================

MAX_PART_NUMBER_LENGTH = 50
MAX_NAME_LENGTH = 255
MAX_CATEGORY_LENGTH = 100
MAX_UNIT_LENGTH = 20
MAX_NOTES_LENGTH = 2000

# ============================================================================
# CSV Export
# ============================================================================

BOM_CSV_HEADER: List[str] = [
    "Level",
    "Part Number",
    "Name",
    "Quantity",
    "Unit",
    "Path",
]

# ============================================================================
# Error Messages
# ============================================================================

ERROR_REQUIRED_FIELD = "This field is required"
ERROR_INVALID_QUANTITY = (
    "Quantity must be a positive number with at most "
    f"{MAX_QUANTITY_DECIMAL_PLACES} decimal places (e.g., 1, 2.5, 0.125)"
)
