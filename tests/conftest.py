import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app

ADMIN_EMAIL = "admin@innova.com"
ADMIN_PASSWORD = "admin123"


@pytest.fixture
def settings():
    return Settings(
        jwt_secret="test-secret",
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
        bcrypt_rounds=4,
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(app):
    return app.state.db


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(client):
    res = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert res.status_code == 200
    return auth_header(res.json()["accessToken"])


@pytest.fixture
def register(client):
    def _register(email="ana@innova.com", password="secreto1", **extra):
        res = client.post("/api/auth/register", json={"email": email, "password": password, **extra})
        assert res.status_code == 201, res.text
        return res.json()

    return _register


@pytest.fixture
def user_headers(register):
    return auth_header(register()["accessToken"])
