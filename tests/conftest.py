import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from game_student.config import Settings
from game_student.database import Base, make_engine, make_session_factory
from game_student.main import create_app
from game_student.notifications import EmailSender
from game_student.security import create_access_token, hash_password
from game_student.store import SqlStore
from game_student.stripe_service import StripeGateway

TEST_SETTINGS = Settings(
    database_url="sqlite://",
    jwt_secret="test-secret",
    stripe_secret_key="sk_test_123",
)

# One in-memory database shared by the test thread and the app's threadpool
engine = make_engine("sqlite://", poolclass=StaticPool)
TestingSessionLocal = make_session_factory(engine)


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def store():
    return SqlStore(TestingSessionLocal)


@pytest.fixture
def gateway(mocker):
    return mocker.Mock(spec=StripeGateway)


@pytest.fixture
def sender(mocker):
    return mocker.Mock(spec=EmailSender)


@pytest.fixture
def client(store, gateway, sender):
    app = create_app(TEST_SETTINGS, store=store, gateway=gateway, sender=sender)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def user(store):
    return store.create_user("a@b.com", hash_password("pw"), "cus_123")


@pytest.fixture
def auth_headers(user):
    token = create_access_token(user.email, TEST_SETTINGS.jwt_secret)
    return {"Authorization": f"Bearer {token}"}
