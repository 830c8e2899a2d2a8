import pytest
from fastapi.testclient import TestClient
import uuid

import fakeredis
import mongomock
from mongoengine import get_connection

from workboard.config.settings import Settings
from workboard.db.database import Database
from workboard.db.models.member_model_db import Member as MemberDBModel
from workboard.db.models.user_model_db import User as UserDBModel
from workboard.db.models.workspace_model_db import Workspace as WorkspaceDBModel
from workboard.db.redis_db import RedisStore
from workboard.main import create_app
from workboard.models.role_models import RoleEnum

TEST_MONGODB_URI = "mongodb://localhost:27017"
TEST_MONGODB_NAME = "workboard_test"
TEST_PASSWORD = "SecurePassword123"


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    # No replica set under mongomock, so multi-document transactions are off
    return Settings(
        ENVIRONMENT="test",
        MONGODB_URI=TEST_MONGODB_URI,
        MONGODB_DB_NAME=TEST_MONGODB_NAME,
        MONGODB_USE_TRANSACTIONS=False,
        POSITION_LOCK_WAIT_SECONDS=0.2,
        BACKEND_CORS_ORIGINS=[],
    )


@pytest.fixture(scope="function")
def database(test_settings: Settings):
    db = Database(
        test_settings.MONGODB_URI,
        test_settings.MONGODB_DB_NAME,
        use_transactions=False,
        mongo_client_class=mongomock.MongoClient,
    )
    db.connect()
    # Every test starts from an empty database
    get_connection().drop_database(TEST_MONGODB_NAME)
    yield db
    db.close()


@pytest.fixture(scope="function")
def redis_store(test_settings: Settings) -> RedisStore:
    client = fakeredis.FakeRedis(decode_responses=True)
    client.flushall()
    return RedisStore(client, lock_timeout=test_settings.POSITION_LOCK_TIMEOUT_SECONDS, lock_wait=test_settings.POSITION_LOCK_WAIT_SECONDS)


@pytest.fixture(scope="function")
def client(test_settings: Settings, database: Database, redis_store: RedisStore):
    # TestClient runs the lifespan: handles are connected on entry, closed on exit.
    app = create_app(settings=test_settings, database=database, redis_store=redis_store)
    with TestClient(app) as c:
        yield c


@pytest.fixture(scope="function")
def register_user(client: TestClient):
    """Register through /auth and return (auth headers, user id)."""
    def _register(email: str, name: str = None):
        payload = {"email": email, "password": TEST_PASSWORD, "name": name or email.split("@")[0]}
        response = client.post("/auth/register", json=payload)
        assert response.status_code == 201, f"Registration of {email} failed: {response.text}"
        body = response.json()
        return {"Authorization": f"Bearer {body['access_token']}"}, uuid.UUID(body["user"]["id"])
    return _register


@pytest.fixture(scope="function")
def owner(register_user):
    return register_user("owner@example.com", "Owner User")


@pytest.fixture(scope="function")
def workspace_id(client: TestClient, owner) -> uuid.UUID:
    headers, _ = owner
    response = client.post("/workspaces", headers=headers, json={"name": "Test Workspace"})
    assert response.status_code == 201, response.text
    return uuid.UUID(response.json()["data"]["workspace"]["id"])


@pytest.fixture(scope="function")
def add_member():
    """Insert a membership directly, bypassing invitations."""
    def _add(workspace_id: uuid.UUID, user_id: uuid.UUID, role: RoleEnum = RoleEnum.MEMBER) -> MemberDBModel:
        member = MemberDBModel(
            user=UserDBModel.objects(id=user_id).first(),
            workspace=WorkspaceDBModel.objects(id=workspace_id).first(),
            role=role,
        )
        member.save()
        return member
    return _add


@pytest.fixture(scope="function")
def member_of(register_user, add_member, workspace_id):
    """Register a user and add them to the test workspace with ``role``."""
    def _member(email: str, role: RoleEnum = RoleEnum.MEMBER):
        headers, user_id = register_user(email)
        membership = add_member(workspace_id, user_id, role)
        return headers, user_id, membership.id
    return _member
