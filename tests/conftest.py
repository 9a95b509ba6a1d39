import os

import pytest
from flask_jwt_extended import create_access_token

from payroll_api import create_app
from payroll_api.extensions import db


@pytest.fixture(scope="function")
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app()
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope="function")
def session(app):
    yield db.session


@pytest.fixture(scope="function")
def client(app):
    return app.test_client()


@pytest.fixture(scope="function")
def token(app):
    def _make(roles=("admin",), perms=()):
        tok = create_access_token(identity="1", additional_claims={"roles": list(roles), "perms": list(perms)})
        return {"Authorization": f"Bearer {tok}"}
    return _make
