"""Tests for database session management."""

import threading

import pytest
from sqlalchemy import text

from src.models import BomItem, Part
from src.services import bom_service, database, part_service
from src.services.database import locked_session_scope, session_scope
from src.services.exceptions import CompositionCycleError


class TestSessionScope:
    """Tests for session_scope() and locked_session_scope()."""

    def test_session_scope_commits(self, test_db):
        with session_scope() as session:
            session.add(Part(project_id=1, part_number="PN-1", name="Bracket"))

        with session_scope() as session:
            assert session.query(Part).count() == 1

    def test_session_scope_rolls_back_on_error(self, test_db):
        with pytest.raises(RuntimeError):
            with session_scope() as session:
                session.add(Part(project_id=1, part_number="PN-1", name="Bracket"))
                session.flush()
                raise RuntimeError("boom")

        with session_scope() as session:
            assert session.query(Part).count() == 0

    def test_locked_scope_commits(self, test_db):
        with locked_session_scope() as session:
            session.add(Part(project_id=1, part_number="PN-1", name="Bracket"))

        with session_scope() as session:
            assert session.query(Part).count() == 1

    def test_locked_scope_holds_write_lock(self, test_db):
        acquired = []

        def try_lock():
            got = database._write_lock.acquire(blocking=False)
            acquired.append(got)
            if got:
                database._write_lock.release()

        with locked_session_scope():
            worker = threading.Thread(target=try_lock)
            worker.start()
            worker.join()

        try_lock()
        assert acquired == [False, True]

    def test_locked_scope_opens_write_transaction_on_sqlite(self, test_db):
        with locked_session_scope() as session:
            dbapi_connection = session.connection().connection.dbapi_connection
            assert dbapi_connection.in_transaction
            session.execute(text("SELECT 1"))


@pytest.fixture
def file_db(tmp_path, monkeypatch):
    monkeypatch.setenv("PLM_DATABASE_URL", f"sqlite:///{tmp_path / 'plm.db'}")
    database.close_connections()
    yield tmp_path / "plm.db"
    database.close_connections()


class TestDatabaseSetup:
    """Tests for engine creation and table setup on a file database."""

    def test_initialize_creates_tables(self, file_db):
        database.initialize_app_database()

        assert file_db.exists()
        assert database.verify_database() is True

    def test_foreign_keys_enabled(self, file_db):
        engine = database.get_engine()

        with engine.connect() as connection:
            assert connection.execute(text("PRAGMA foreign_keys")).scalar() == 1

    def test_reset_requires_confirm(self, file_db):
        with pytest.raises(ValueError):
            database.reset_database()

    def test_reset_drops_data(self, file_db):
        database.initialize_app_database()
        with session_scope() as session:
            session.add(Part(project_id=1, part_number="PN-1", name="Bracket"))

        database.reset_database(confirm=True)

        with session_scope() as session:
            assert session.query(Part).count() == 0


class TestConcurrentWrites:
    """Opposite add_edge calls racing on a file database."""

    def _race(self, parent_id, child_id):
        barrier = threading.Barrier(2)
        outcomes = []

        def add(parent, child):
            barrier.wait()
            try:
                outcomes.append(bom_service.add_edge(parent, child, 1))
            except CompositionCycleError as e:
                outcomes.append(e)

        workers = [
            threading.Thread(target=add, args=(parent_id, child_id)),
            threading.Thread(target=add, args=(child_id, parent_id)),
        ]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()
        return outcomes

    def test_opposite_edges_never_both_succeed(self, file_db):
        database.initialize_app_database()

        for round_number in range(10):
            a = part_service.create_part(1, f"A-{round_number}", "Assembly A")
            b = part_service.create_part(1, f"B-{round_number}", "Assembly B")

            outcomes = self._race(a.id, b.id)

            assert len(outcomes) == 2
            assert sum(isinstance(o, BomItem) for o in outcomes) == 1
            assert sum(isinstance(o, CompositionCycleError) for o in outcomes) == 1

        with session_scope() as session:
            assert session.query(BomItem).count() == 10
