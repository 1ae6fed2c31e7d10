"""
Part Service - Part registry operations.

The BOM engine treats parts as a read-only collaborator: it looks parts up
by id to label tree nodes and to validate new BOM lines. The create/list/
delete operations here exist for the CLI, fixtures and the surrounding
application.
"""

from typing import List, Optional, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from src.models import Part, PartStatus
from src.services.database import session_scope
from src.services.exceptions import (
    DatabaseError,
    PartNotFound,
    ValidationError,
)
from src.services.logging_utils import get_service_logger, log_operation
from src.utils.constants import (
    MAX_CATEGORY_LENGTH,
    MAX_NAME_LENGTH,
)
from src.utils.validators import (
    sanitize_string,
    validate_part_number,
    validate_required_string,
    validate_string_length,
)

logger = get_service_logger(__name__)


def _validate_part_fields(part_number: str, name: str, category: Optional[str]) -> None:
    errors = []
    is_valid, error = validate_part_number(part_number)
    if not is_valid:
        errors.append(error)

    is_valid, error = validate_required_string(name, "Name")
    if is_valid:
        is_valid, error = validate_string_length(name.strip(), MAX_NAME_LENGTH, "Name")
    if not is_valid:
        errors.append(error)

    is_valid, error = validate_string_length(category, MAX_CATEGORY_LENGTH, "Category")
    if not is_valid:
        errors.append(error)

    if errors:
        raise ValidationError(errors)


def create_part(
    project_id: int,
    part_number: str,
    name: str,
    category: Optional[str] = None,
    description: Optional[str] = None,
    status: Union[PartStatus, str] = PartStatus.DRAFT,
    session=None,
) -> Part:
    """
    Create a new part in a project.

    Args:
        project_id: Owning project ID
        part_number: Part number, unique within the project
        name: Display name
        category: Optional category
        description: Optional description
        status: Initial status (PartStatus or its string value)
        session: Optional SQLAlchemy session

    Returns:
        Created Part instance

    Raises:
        ValidationError: If fields are invalid or the part number is taken
    """
    _validate_part_fields(part_number, name, category)
    try:
        status = status if isinstance(status, PartStatus) else PartStatus.from_string(status)
    except ValueError as e:
        raise ValidationError([str(e)])

    part_number = part_number.strip()

    def _impl(session):
        existing = (
            session.query(Part)
            .filter(Part.project_id == project_id, Part.part_number == part_number)
            .first()
        )
        if existing is not None:
            raise ValidationError(
                [f"Part number '{part_number}' already exists in project {project_id}"]
            )

        part = Part(
            project_id=project_id,
            part_number=part_number,
            name=name.strip(),
            category=sanitize_string(category),
            description=sanitize_string(description),
            status=status,
        )
        session.add(part)
        session.flush()

        log_operation(
            logger,
            operation="create_part",
            outcome="success",
            part_id=part.id,
            project_id=project_id,
            part_number=part_number,
        )
        return part

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as session:
            return _impl(session)
    except ValidationError:
        raise
    except IntegrityError as e:
        raise ValidationError(
            [f"Part number '{part_number}' already exists in project {project_id}"]
        ) from e
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to create part", e)


def get_part(part_id: int, session=None) -> Part:
    """
    Retrieve a part by ID.

    Args:
        part_id: Part ID
        session: Optional SQLAlchemy session

    Returns:
        Part instance

    Raises:
        PartNotFound: If the part doesn't exist
    """
    def _impl(session):
        part = session.query(Part).filter(Part.id == part_id).first()
        if part is None:
            raise PartNotFound(part_id)
        return part

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as session:
            return _impl(session)
    except PartNotFound:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to retrieve part {part_id}", e)


def get_part_by_number(project_id: int, part_number: str, session=None) -> Optional[Part]:
    """
    Look up a part by its project-scoped part number.

    Returns:
        Part instance or None if no part has that number
    """
    def _impl(session):
        return (
            session.query(Part)
            .filter(Part.project_id == project_id, Part.part_number == part_number.strip())
            .first()
        )

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as session:
            return _impl(session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to look up part '{part_number}'", e)


def list_parts(
    project_id: int,
    status: Optional[PartStatus] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    session=None,
) -> List[Part]:
    """
    List parts in a project, ordered by part number.

    Args:
        project_id: Project ID
        status: Only parts with this status
        category: Only parts in this category
        search: Case-insensitive substring of part number or name
        session: Optional SQLAlchemy session

    Returns:
        List of Part instances
    """
    def _impl(session):
        query = session.query(Part).filter(Part.project_id == project_id)
        if status is not None:
            query = query.filter(Part.status == status)
        if category:
            query = query.filter(Part.category == category)
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            query = query.filter(Part.part_number.ilike(pattern) | Part.name.ilike(pattern))
        return query.order_by(Part.part_number).all()

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as session:
            return _impl(session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to list parts for project {project_id}", e)


def delete_part(part_id: int) -> bool:
    """
    Delete a part. BOM items where it is parent or child are removed with it.

    Args:
        part_id: Part ID

    Returns:
        True if deleted, False if the part didn't exist
    """
    try:
        with session_scope() as session:
            part = session.query(Part).filter(Part.id == part_id).first()
            if part is None:
                return False

            removed_edges = len(part.child_items) + len(part.parent_items)
            session.delete(part)

            log_operation(
                logger,
                operation="delete_part",
                outcome="success",
                part_id=part_id,
                removed_bom_items=removed_edges,
            )
            return True

    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to delete part {part_id}", e)
