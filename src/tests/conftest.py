"""Pytest configuration and fixtures for service layer tests."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session

from src.models.base import Base
from src.services import database as db_module
from src.utils.config import reset_config


@pytest.fixture(autouse=True)
def reset_app_config():
    """Give every test a fresh configuration singleton."""
    reset_config()
    yield
    reset_config()


@pytest.fixture(scope="function")
def test_db():
    """Provide a clean test database for each test function.

    This fixture:
    1. Creates an in-memory SQLite database
    2. Creates all tables
    3. Provides the database to the test
    4. Drops all tables after the test completes
    """
    # Create in-memory SQLite database for testing
    engine = create_engine("sqlite:///:memory:", echo=False)

    # Create all tables
    Base.metadata.create_all(engine)

    # Create session factory
    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    Session = scoped_session(session_factory)

    # Monkey-patch the global session factory for tests
    original_get_session = db_module.get_session_factory
    db_module.get_session_factory = lambda: Session

    # Provide database to test
    yield Session

    # Cleanup
    Session.remove()
    Base.metadata.drop_all(engine)
    engine.dispose()

    # Restore original session factory
    db_module.get_session_factory = original_get_session


@pytest.fixture(scope="function")
def make_part(test_db):
    """Provide a factory that registers parts in project 1 (or another project)."""
    from src.services import part_service

    def _make_part(part_number, name=None, project_id=1, **kwargs):
        return part_service.create_part(
            project_id, part_number, name or f"Part {part_number}", **kwargs
        )

    return _make_part


@pytest.fixture(scope="function")
def rxyz_bom(make_part):
    """Provide a small two-level BOM.

    Creates:
    - R (root)
      - X (qty 2)
        - Z (qty 5)
      - Y (qty 1)
    """
    from src.services import bom_service

    r = make_part("R", "Root assembly")
    x = make_part("X", "Sub-assembly X", category="Assembly")
    y = make_part("Y", "Bracket Y", category="Bracket")
    z = make_part("Z", "Screw Z", category="Fastener", status="active")

    r_x = bom_service.add_edge(r.id, x.id, 2)
    r_y = bom_service.add_edge(r.id, y.id, 1)
    x_z = bom_service.add_edge(x.id, z.id, 5)

    class BomData:
        def __init__(self):
            self.r, self.x, self.y, self.z = r, x, y, z
            self.r_x, self.r_y, self.x_z = r_x, r_y, x_z

    return BomData()


@pytest.fixture(scope="function")
def raw_edge(test_db):
    """Provide a helper that inserts a BomItem directly, bypassing the service checks.

    Used to simulate data written by other tools (cycles, bad quantities).
    """
    from src.models import BomItem

    def _raw_edge(parent_id, child_id, quantity="1", unit="EA", position=0):
        session = test_db()
        edge = BomItem(
            parent_part_id=parent_id,
            child_part_id=child_id,
            quantity=quantity,
            unit=unit,
            position=position,
        )
        session.add(edge)
        session.commit()
        edge_id = edge.id
        session.close()
        return edge_id

    return _raw_edge
