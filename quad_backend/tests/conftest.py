import pytest

from quad_backend.auth_service.utils import generate_token
from quad_backend.config import Settings
from quad_backend.database.db_connection import Database
from quad_backend.gateway.bindings import Bindings
from quad_backend.gateway.server import create_app
from quad_backend.storage.blob_store import InMemoryBlobStore


@pytest.fixture
def settings():
    return Settings(database_url="postgresql://test@localhost/test")


@pytest.fixture
def mock_db(mocker):
    """
    Mocks the Database binding. Tests set query/query_first/execute/batch
    return values per call.
    """
    db = mocker.Mock(spec=Database)
    db.query.return_value = []
    db.query_first.return_value = None
    db.execute.return_value = {"success": True, "changes": 1, "last_insert_id": None}
    db.batch.return_value = []
    return db


@pytest.fixture
def storage():
    return InMemoryBlobStore()


@pytest.fixture
def app(settings, mock_db, storage):
    app = create_app(bindings=Bindings(settings=settings, database=mock_db, storage=storage))
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def token():
    return generate_token({"userId": 1, "email": "test@example.com", "username": "tester"})


@pytest.fixture
def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}
