"""
Shared fixtures: an app on in-memory SQLite, seeded users and bins, and
helpers that drive a route through the API.

Fixtures return ids rather than model objects; each request runs in its own
app context and session, so tests read state back through the API or a
fresh context.
"""
import itertools

import pytest

from app import create_app
from auth import generate_token
from extensions import db
from models import Bin, User
from statuses import BinStatus, BinType, UserRole, Zone


@pytest.fixture
def app():
    return create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "SECRET_KEY": "test-secret",
        "LOG_LEVEL": "WARNING",
    })


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def factory(username, role=UserRole.COLLECTOR, password="secret123", **fields):
        with app.app_context():
            user = User(
                first_name=fields.pop("first_name", username.title()),
                last_name=fields.pop("last_name", "Tester"),
                username=username,
                email=f"{username}@example.com",
                role=role,
                **fields,
            )
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return user.id

    return factory


@pytest.fixture
def auth_header(app):
    def factory(user_id):
        with app.app_context():
            user = db.session.get(User, user_id)
            return {"Authorization": f"Bearer {generate_token(user)}"}

    return factory


@pytest.fixture
def admin(make_user):
    return make_user("admin", UserRole.ADMIN)


@pytest.fixture
def collector(make_user):
    return make_user("collector1", UserRole.COLLECTOR)


@pytest.fixture
def admin_headers(auth_header, admin):
    return auth_header(admin)


@pytest.fixture
def collector_headers(auth_header, collector):
    return auth_header(collector)


@pytest.fixture
def make_bin(app):
    codes = itertools.count(1)

    def factory(fill_level=0, weight=0, bin_type=BinType.GENERAL, capacity=100,
                status=BinStatus.ACTIVE, owner_id=None):
        with app.app_context():
            bin_obj = Bin(
                bin_code=f"T{next(codes):03d}",
                location="12 Test Street",
                zone=Zone.A,
                bin_type=bin_type,
                capacity=capacity,
                weight=weight,
                fill_level=fill_level,
                status=status,
                owner_id=owner_id,
            )
            db.session.add(bin_obj)
            db.session.commit()
            return bin_obj.id

    return factory


@pytest.fixture
def make_route(client, admin_headers, make_bin, collector):
    names = itertools.count(1)

    def factory(n_bins=3, assign=True, bin_ids=None):
        bin_ids = bin_ids or [make_bin(fill_level=60) for _ in range(n_bins)]
        payload = {
            "routeName": f"Route {next(names)}",
            "bins": [{"binId": b, "order": i + 1} for i, b in enumerate(bin_ids)],
            "scheduledDate": "2026-10-20",
            "scheduledTime": "08:00",
        }
        if assign:
            payload["assignedTo"] = collector
        resp = client.post("/api/routes", json=payload, headers=admin_headers)
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()["data"]["route"]

    return factory


@pytest.fixture
def started_route(client, make_route, collector_headers):
    route = make_route()
    resp = client.put(
        f"/api/collections/routes/{route['id']}/start", headers=collector_headers
    )
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()["data"]["route"]
