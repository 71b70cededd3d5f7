# tests/conftest.py
import os

# Set before the app (and the lazily created engine) is imported
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("METRICS_ENABLED", "1")
os.environ.setdefault("AUTO_CREATE_SCHEMA", "1")

import pytest  # noqa: E402
from app import create_app  # noqa: E402
from controllers.admin import hash_password  # noqa: E402
from models.base import Base, init_engine_and_session  # noqa: E402
from tests.utils import WEBHOOK_SECRET, ADMIN_PASSWORD  # noqa: E402


@pytest.fixture(scope="session")
def app():
    return create_app({
        "TESTING": True,
        "RAZORPAY_WEBHOOK_SECRET": WEBHOOK_SECRET,
        "PAYMENT_GATEWAY": "dummy",
        "MAIL_BACKEND": "log",
        "ADMIN_PASSWORD_HASH": hash_password(ADMIN_PASSWORD),
        "CORS_ALLOWED_ORIGINS": ["https://noy-admin.web.app"],
        "DISPLAY_TZ": "UTC",
    })


@pytest.fixture(scope="session")
def db_engine(app):
    engine, _Session = init_engine_and_session()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture(autouse=True)
def _db_clean(request):
    yield
    if "db_engine" not in request.fixturenames:
        return
    engine, _ = init_engine_and_session()
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture()
def client(app):
    return app.test_client()
