"""
Pytest configuration and fixtures for the workshop API tests
"""
import pytest
from workshop import create_app
from workshop import db as _db
from workshop.data.core.setting import Setting
from workshop.data.core.user_info.user import User
from workshop.data.inventory.product import Product
from workshop.data.resources.technician import Technician
from workshop.data.resources.tool import Tool
from workshop.data.resources.machine import Machine
from workshop.data.resources.workstation import WorkStation
from workshop.data.core.customer import Customer

TEST_PASSWORD = 'workshop-test-password'


@pytest.fixture(scope='function')
def app():
    """Create Flask application backed by an in-memory database"""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret-key',
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'ENABLE_HTTPS': False,
        'FORCE_HTTPS_REDIRECT': False,
        'SESSION_COOKIE_SECURE': False,
        'RATELIMIT_ENABLED': False,
        'PROGRESS_POLICY': 'ratio',
    })

    with app.app_context():
        _db.create_all()
        user = User(username='tester', email='tester@example.com', is_active=True)
        user.set_password(TEST_PASSWORD)
        _db.session.add(user)
        _db.session.add(Setting(company_name='Test Workshop', default_currency='USD',
                                default_tax_rate=10.0, invoice_due_days=30))
        _db.session.commit()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope='function')
def db(app):
    return _db


@pytest.fixture(scope='function')
def user(app):
    return User.query.filter_by(username='tester').first()


@pytest.fixture(scope='function')
def client(app):
    """Create Flask test client"""
    return app.test_client()


@pytest.fixture(scope='function')
def authenticated_client(client):
    """Test client logged in as the seeded tester user"""
    response = login_user(client)
    assert response.status_code == 200
    return client


def login_user(client, username='tester', password=TEST_PASSWORD):
    """Helper function to login a user"""
    return client.post('/auth/login', json={'username': username, 'password': password})


def _create(model, **fields):
    instance = model(**fields)
    _db.session.add(instance)
    _db.session.commit()
    return instance


@pytest.fixture
def make_product(app):
    def factory(name='Oil Filter', sku=None, current_stock=10, selling_price=10.0, tax_rate=0.0, **extra):
        sku = sku or f"SKU-{Product.query.count() + 1:03d}"
        return _create(Product, name=name, sku=sku, current_stock=current_stock,
                       selling_price=selling_price, cost_price=extra.pop('cost_price', 1.0),
                       tax_rate=tax_rate, **extra)
    return factory


@pytest.fixture
def make_technician(app):
    def factory(name='Sam Ortiz', **extra):
        employee_id = extra.pop('employee_id', f"TECH-{Technician.query.count() + 1:03d}")
        return _create(Technician, name=name, employee_id=employee_id, **extra)
    return factory


@pytest.fixture
def make_tool(app):
    def factory(name='Torque Wrench', **extra):
        tool_number = extra.pop('tool_number', f"TL-{Tool.query.count() + 1:03d}")
        return _create(Tool, name=name, tool_number=tool_number, **extra)
    return factory


@pytest.fixture
def make_machine(app):
    def factory(name='Two-Post Lift', **extra):
        machine_number = extra.pop('machine_number', f"MC-{Machine.query.count() + 1:03d}")
        return _create(Machine, name=name, machine_number=machine_number, **extra)
    return factory


@pytest.fixture
def make_workstation(app):
    def factory(name='Bay 1', **extra):
        station_number = extra.pop('station_number', f"WS-{WorkStation.query.count() + 1:03d}")
        return _create(WorkStation, name=name, station_number=station_number, **extra)
    return factory


@pytest.fixture
def make_customer(app):
    def factory(first_name='Dana', phone='+15551234', **extra):
        return _create(Customer, first_name=first_name, phone=phone, **extra)
    return factory


@pytest.fixture
def create_job(authenticated_client):
    """POST /jobs and return the created job dict"""
    def factory(**payload):
        payload.setdefault('title', 'Brake service')
        response = authenticated_client.post('/jobs', json=payload)
        assert response.status_code == 201, response.get_json()
        return response.get_json()['data']
    return factory


SCHEDULE = {'start': '2026-10-20T08:00:00Z', 'end': '2026-10-20T17:00:00Z'}
