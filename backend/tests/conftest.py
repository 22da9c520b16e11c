"""
Pytest fixtures for CasaStock backend tests.

Provides test database setup, owner fixtures, a fake payment gateway
and the Flask test client.
"""

import pytest

from casastock import create_app
from casastock.extensions import db
from casastock.models import Batch, Profile, User
from casastock.services import ledger_service, subscription_service
from casastock.services import inventory_service


TEST_PASSWORD = "Password123!"
WEBHOOK_SECRET = "whsec_test"
KEY_SECRET = "key_secret_test"


class FakeRazorpayClient:
    """In-process stand-in for the Razorpay subscriptions API."""

    def __init__(self):
        self.calls = []
        self.fail_with = None

    def create_subscription(self, *, plan_id, owner_id):
        self.calls.append({"plan_id": plan_id, "owner_id": owner_id})
        if self.fail_with is not None:
            raise self.fail_with
        n = len(self.calls)
        return {
            "id": f"sub_test_{owner_id}_{n}",
            "short_url": f"https://rzp.io/i/test{n}",
            "status": "created",
        }


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'RAZORPAY_KEY_ID': 'rzp_test_key',
    'RAZORPAY_KEY_SECRET': KEY_SECRET,
    'RAZORPAY_WEBHOOK_SECRET': WEBHOOK_SECRET,
    'RAZORPAY_PLAN_ID': 'plan_test',
}


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    config = dict(TEST_CONFIG)
    config['UPLOAD_FOLDER'] = str(tmp_path_factory.mktemp('uploads'))
    app = create_app(config)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def gateway(app):
    """Fresh fake gateway per test."""
    fake = FakeRazorpayClient()
    app.extensions['razorpay'] = fake
    return fake


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


def make_owner(db_session, username: str) -> User:
    """Owner row without bcrypt cost; not usable for password login."""
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash="x",
        is_active=True,
    )
    db_session.add(user)
    db_session.flush()
    db_session.add(Profile(owner_id=user.id))
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def owner(db_session):
    return make_owner(db_session, "owner_a")


@pytest.fixture(scope='function')
def other_owner(db_session):
    return make_owner(db_session, "owner_b")


@pytest.fixture(scope='function')
def capital(owner):
    """Owner A starts with 100,000 cents of capital."""
    return ledger_service.adjust_capital(owner.id, 100_000)


@pytest.fixture(scope='function')
def batch(db_session, owner) -> Batch:
    return inventory_service.create_batch(owner.id, "Spring Batch")


@pytest.fixture(scope='function')
def stock_product(owner, batch, capital):
    """10 units bought at 60, selling at 100."""
    return inventory_service.record_stock_purchase(
        owner.id,
        batch_id=batch.id,
        name="Blue Shirt",
        buying_price_cents=60,
        selling_price_cents=100,
        quantity=10,
    )


def current_balance(owner_id: int) -> int | None:
    entry = ledger_service.get_current_capital(owner_id)
    return entry.balance_cents if entry else None


def register(client, username: str, password: str = TEST_PASSWORD):
    return client.post('/api/auth/register', json={
        'username': username,
        'email': f'{username}@example.com',
        'password': password,
    })


def get_auth_token(client, username: str, password: str = TEST_PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def subscribed_token(client, db_session):
    """Register an owner through the API and activate its subscription."""
    response = register(client, "shopkeeper")
    assert response.status_code == 201
    data = response.json
    subscription_service.activate_manually(
        data['user']['id'],
        plan_name="CasaStock Monthly",
        amount_cents=8900,
        currency="INR",
    )
    return data['token']
