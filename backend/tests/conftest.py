"""
Pytest fixtures for borrow service tests.

Provides test database setup, stores/users, an in-memory workflow, and test client.
"""

import pytest
from storelend import create_app
from storelend.config import TestingConfig
from storelend.extensions import db
from storelend.models import Store, User
from storelend.services.audit_service import InMemoryAuditRecorder
from storelend.services.borrow_workflow import EXTENSION_KEY, BorrowWorkflow
from storelend.services.dispatch import SideEffectDispatcher
from storelend.services.notification_service import InMemoryNotificationGateway


BEER_ITEMS = [{"productName": "Beer 620ml", "quantity": 24}]


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def workflow(app, db_session):
    """Workflow with in-memory gateways and inline side effects."""
    wf = BorrowWorkflow(
        notifier=InMemoryNotificationGateway(),
        auditor=InMemoryAuditRecorder(),
        dispatcher=SideEffectDispatcher(mode="inline"),
    )
    previous = app.extensions[EXTENSION_KEY]
    app.extensions[EXTENSION_KEY] = wf
    yield wf
    app.extensions[EXTENSION_KEY] = previous


@pytest.fixture(scope='function')
def store_a(db_session):
    """Borrowing store (S1)."""
    store = Store(name="Central Store", code="S1")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def store_b(db_session):
    """Lending store (S2)."""
    store = Store(name="Riverside Store", code="S2")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def closed_store(db_session):
    store = Store(name="Closed Store", code="S9", is_active=False)
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def borrower(db_session, store_a):
    """Staff user at the borrowing store."""
    user = User(username="alice", display_name="Alice", store_id=store_a.id)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def lender(db_session, store_b):
    """Staff user at the lending store (U1)."""
    user = User(username="bob", display_name="Bob", store_id=store_b.id)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def lender_2(db_session, store_b):
    """Second lending store user (U2)."""
    user = User(username="carol", display_name="Carol", store_id=store_b.id)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def pending_borrow(workflow, store_a, store_b, borrower):
    """Pending borrow: S1 borrows 24 x Beer 620ml from S2."""
    borrow = workflow.request_borrow(
        from_store_id=store_a.id,
        to_store_id=store_b.id,
        items=BEER_ITEMS,
        actor_id=borrower.id,
    )
    workflow.notifier.reset()
    workflow.auditor.reset()
    return borrow


@pytest.fixture(scope='function')
def approved_borrow(workflow, pending_borrow, lender):
    """Borrow approved by the lending store (U1)."""
    borrow = workflow.approve(pending_borrow.id, lender.id)
    workflow.notifier.reset()
    workflow.auditor.reset()
    return borrow


def actor_headers(user) -> dict:
    """Helper to create actor headers."""
    return {'X-User-Id': str(user.id)}


@pytest.fixture(scope='function')
def race_app(tmp_path):
    """
    App on a file-backed SQLite database, for tests where threads need
    separate connections.
    """
    class RaceConfig(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'race.sqlite3'}"
        DB_RETRY_ATTEMPTS = 10

    race = create_app(RaceConfig)
    with race.app_context():
        db.create_all()
    yield race
    with race.app_context():
        db.session.remove()
        db.engine.dispose()


def seed_directory(app):
    """Borrowing store, lending store and one user at each; returns their ids."""
    with app.app_context():
        lending = Store(name="Riverside Store", code="S2")
        borrowing = Store(name="Central Store", code="S1")
        db.session.add_all([lending, borrowing])
        db.session.flush()
        borrower = User(username="alice", display_name="Alice", store_id=borrowing.id)
        lender = User(username="bob", display_name="Bob", store_id=lending.id)
        db.session.add_all([borrower, lender])
        db.session.commit()
        return borrowing.id, lending.id, borrower.id, lender.id
