"""Service layer logging utilities.

Provides structured logging helpers so BOM mutations and traversals log
with a consistent format and machine-readable context.

Usage:
    from src.services.logging_utils import get_service_logger, log_operation

    logger = get_service_logger(__name__)

    log_operation(
        logger,
        operation="add_edge",
        outcome="success",
        parent_part_id=12,
        child_part_id=34,
    )

    log_operation(
        logger,
        operation="add_edge",
        outcome="cycle_rejected",
        level=logging.WARNING,
        parent_part_id=34,
        child_part_id=12,
    )
"""

import logging
from typing import Any

LOGGER_PREFIX = "plm.services"


def get_service_logger(name: str) -> logging.Logger:
    """
    Get a logger configured for service operations.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Logger under the 'plm.services' namespace.

    Example:
        >>> get_service_logger("src.services.bom_service").name
        'plm.services.bom_service'
    """
    if "." in name:
        name = name.split(".")[-1]
    return logging.getLogger(f"{LOGGER_PREFIX}.{name}")


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """
    Log a service operation with structured context.

    The message is "<operation>: <outcome>"; operation, outcome and every
    context field are attached to the record via ``extra``.

    Args:
        logger: Logger instance to use
        operation: Operation name (e.g., "add_edge", "build_tree")
        outcome: Outcome description (e.g., "success", "cycle_rejected")
        level: Log level (default: INFO). Use DEBUG for read paths.
        **context: Additional context fields (part ids, edge id, error text)
    """
    extra = {
        "operation": operation,
        "outcome": outcome,
        **context,
    }
    logger.log(level, f"{operation}: {outcome}", extra=extra)
