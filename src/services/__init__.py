"""Services package - Business logic layer for the PLM BOM engine.

This package contains the service modules that provide business logic
and database operations for parts and Bills of Materials.

Architecture:
- Services: Stateless functions organized by concern (parts, BOM edges, export)
- Transactions: Managed via session_scope(); cycle-guarded writes via
  locked_session_scope()
- Exceptions: Consistent error handling via ServiceError hierarchy
- Validation: Input validation before database operations

Service Modules:
- part_service: Part registry lookups and maintenance
- bom_service: BOM edge store, tree, where-used and integrity queries
- bom_export_service: Flat BOM export to CSV

Infrastructure:
- bom_graph: Shared BOM traversal and the cycle guard
- bom_tree: Pure tree building, flattening and quantity rollup
- database: Session management and database utilities
- exceptions: Custom exception classes for service layer errors
- logging_utils: Structured logging helpers
"""

from . import (
    database,
    part_service,
    bom_graph,
    bom_tree,
    bom_service,
    bom_export_service,
)

from .exceptions import (
    ServiceError,
    PartNotFound,
    ValidationError,
    InvalidQuantityError,
    CompositionCycleError,
    DuplicateEdgeError,
    EdgeNotFoundError,
    MaxDepthExceededError,
    DatabaseError,
)

__all__ = [
    # Service modules
    "database",
    "part_service",
    "bom_graph",
    "bom_tree",
    "bom_service",
    "bom_export_service",
    # Exceptions
    "ServiceError",
    "PartNotFound",
    "ValidationError",
    "InvalidQuantityError",
    "CompositionCycleError",
    "DuplicateEdgeError",
    "EdgeNotFoundError",
    "MaxDepthExceededError",
    "DatabaseError",
]
