"""Service layer exception classes for the PLM BOM engine.

This module defines the exceptions raised by the service layer so request
handlers can map each failure to a user-facing message.

Exception Hierarchy:
    ServiceError (base)
    ├── PartNotFound
    ├── ValidationError
    │   └── InvalidQuantityError
    ├── CompositionCycleError
    ├── DuplicateEdgeError
    ├── EdgeNotFoundError
    ├── MaxDepthExceededError
    └── DatabaseError
"""

from typing import List, Optional, Sequence


class ServiceError(Exception):
    """Base exception for all service layer errors.

    All service-specific exceptions should inherit from this class.
    """

    pass


class PartNotFound(ServiceError):
    """Raised when a part cannot be found by ID.

    Args:
        part_id: The part ID that was not found

    Example:
        >>> raise PartNotFound(123)
        PartNotFound: Part with ID 123 not found
    """

    def __init__(self, part_id: int):
        self.part_id = part_id
        super().__init__(f"Part with ID {part_id} not found")


class ValidationError(ServiceError):
    """Raised when data validation fails.

    Args:
        errors: List of human-readable validation messages
    """

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(f"Validation failed: {'; '.join(self.errors)}")


class InvalidQuantityError(ValidationError):
    """Raised when a BOM quantity is malformed or not positive.

    Args:
        quantity: The rejected input
        reason: Why it was rejected

    Example:
        >>> raise InvalidQuantityError("-2", "must be greater than 0")
        InvalidQuantityError: Validation failed: Invalid quantity '-2': must be greater than 0
    """

    def __init__(self, quantity, reason: str):
        self.quantity = quantity
        self.reason = reason
        super().__init__([f"Invalid quantity '{quantity}': {reason}"])


class CompositionCycleError(ServiceError):
    """Raised when a BOM edge would make a part contain itself.

    Args:
        parent_part_number: Part that would receive the new child
        child_part_number: Part being added
        path: Existing part-number path from child down to parent that the
            new edge would close (empty for a direct self-reference)

    Example:
        >>> raise CompositionCycleError("ASM-1", "SUB-2", ["SUB-2", "ASM-1"])
        CompositionCycleError: Cannot add SUB-2 as child of ASM-1: SUB-2 already contains ASM-1 via SUB-2/ASM-1
    """

    def __init__(
        self,
        parent_part_number: str,
        child_part_number: str,
        path: Optional[Sequence[str]] = None,
        message: Optional[str] = None,
    ):
        self.parent_part_number = parent_part_number
        self.child_part_number = child_part_number
        self.path = list(path or [])

        if message is None:
            if parent_part_number == child_part_number:
                message = f"Cannot add {child_part_number} as a child of itself"
            else:
                message = (
                    f"Cannot add {child_part_number} as child of {parent_part_number}: "
                    f"{child_part_number} already contains {parent_part_number} "
                    f"via {'/'.join(self.path)}"
                )
        super().__init__(message)


class DuplicateEdgeError(ServiceError):
    """Raised when a parent already has a BOM line for the same child.

    Args:
        parent_part_number: Part number of the parent
        child_part_number: Part number of the child
    """

    def __init__(self, parent_part_number: str, child_part_number: str):
        self.parent_part_number = parent_part_number
        self.child_part_number = child_part_number
        super().__init__(
            f"{child_part_number} is already a BOM item of {parent_part_number}"
        )


class EdgeNotFoundError(ServiceError):
    """Raised when a BOM item cannot be found by ID.

    Args:
        edge_id: The BOM item ID that was not found
    """

    def __init__(self, edge_id: int):
        self.edge_id = edge_id
        super().__init__(f"BOM item with ID {edge_id} not found")


class MaxDepthExceededError(ServiceError):
    """Raised when a BOM traversal goes deeper than the configured bound.

    This never happens for data written through the service layer; it means
    the stored edges contain a cycle the guard did not catch. Callers should
    treat it as an internal fault, not a user input error.

    Args:
        part_id: Part being expanded when the bound was hit
        max_depth: The bound that was exceeded
        path: Part ids or part numbers along the offending path, if known
    """

    def __init__(self, part_id: int, max_depth: int, path: Optional[Sequence[str]] = None):
        self.part_id = part_id
        self.max_depth = max_depth
        self.path = list(path or [])
        super().__init__(
            f"Maximum BOM depth {max_depth} exceeded at part {part_id}; "
            f"the stored BOM likely contains a cycle"
        )


class DatabaseError(ServiceError):
    """Raised when a database operation fails.

    Args:
        message: What the service was trying to do
        original_error: The underlying SQLAlchemy exception
    """

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")
