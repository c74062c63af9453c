# tests/conftest.py

import pytest

from config import Config


@pytest.fixture
def app_with_db(tmp_path):
    """
    Creates a new app instance bound to an in-memory database and yields
    it within an application context.
    """
    from scheme_manager import create_app, db

    class TestConfig(Config):
        TESTING = True
        SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
        UPLOAD_FOLDER = str(tmp_path / "uploads")
        MAX_SALES_RECORDS = 5

    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app  # The tests will run here
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app_with_db):
    return app_with_db.test_client()


@pytest.fixture
def reference():
    from scheme_manager.ingest.reference import ReferenceData
    return ReferenceData()
