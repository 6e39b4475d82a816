"""
Pytest fixtures for stockroom backend tests.

Provides an in-memory database, tenant fixtures, and authenticated clients.
"""

import pytest

from stockroom import create_app
from stockroom.extensions import db
from stockroom.models import Arrivage, Category, Organization, Product, User
from stockroom.models.auth import ROLE_ADMIN, ROLE_STAFF, ROLE_SUPER_ADMIN
from stockroom.services.auth_service import hash_password


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'INVITE_CODES': frozenset(),
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh data for each test, schema kept."""
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()


@pytest.fixture(scope='function')
def org(db_session):
    org = Organization(name="Atlas Beauty", code="ATLAS", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def other_org(db_session):
    org = Organization(name="Rival Shop", code="RIVAL", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


def _make_user(db_session, org, email, role):
    user = User(
        org_id=org.id,
        email=email,
        full_name=email.split("@")[0],
        password_hash=hash_password(PASSWORD),
        role=role,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def owner(db_session, org):
    return _make_user(db_session, org, "owner@atlas.ma", ROLE_SUPER_ADMIN)


@pytest.fixture(scope='function')
def admin(db_session, org):
    return _make_user(db_session, org, "admin@atlas.ma", ROLE_ADMIN)


@pytest.fixture(scope='function')
def staff(db_session, org):
    return _make_user(db_session, org, "staff@atlas.ma", ROLE_STAFF)


@pytest.fixture(scope='function')
def outsider(db_session, other_org):
    return _make_user(db_session, other_org, "owner@rival.ma", ROLE_SUPER_ADMIN)


@pytest.fixture(scope='function')
def category(db_session, org):
    category = Category(org_id=org.id, name="Skincare", name_fr="Soins")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def arrivage(db_session, org):
    arrivage = Arrivage(org_id=org.id, reference="ARR-001", source="ACTION", exchange_rate="10.85")
    db_session.add(arrivage)
    db_session.commit()
    return arrivage


@pytest.fixture(scope='function')
def product(db_session, org, category):
    """10 received, none sold; cost 45.00 DH, sells at 89.00 DH."""
    product = Product(
        org_id=org.id,
        category_id=category.id,
        name="Vitamin C Serum",
        purchase_source="ACTION",
        purchase_price_eur_cents=415,
        purchase_price_mad_cents=4500,
        selling_price_cents=8900,
        quantity_received=10,
        quantity_sold=0,
        reorder_level=3,
    )
    db_session.add(product)
    db_session.commit()
    return product


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password,
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def owner_headers(client, owner):
    return auth_headers(get_auth_token(client, owner.email))


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    return auth_headers(get_auth_token(client, admin.email))


@pytest.fixture(scope='function')
def staff_headers(client, staff):
    return auth_headers(get_auth_token(client, staff.email))


@pytest.fixture(scope='function')
def outsider_headers(client, outsider):
    return auth_headers(get_auth_token(client, outsider.email))
