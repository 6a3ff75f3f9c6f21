"""
Build step tests: critical data and demo data are idempotent.
"""
import pytest

from workshop.build import insert_critical_data, load_critical_data, verify_critical_data
from workshop.data.core.setting import Setting
from workshop.data.core.user_info.user import User
from workshop.data.inventory.product import Product
from workshop.debug.debug_data_manager import insert_debug_data


@pytest.fixture
def passwords(monkeypatch):
    monkeypatch.setenv('SYSTEM_USER_PASSWORD', 'system-password-1')
    monkeypatch.setenv('ADMIN_USER_PASSWORD', 'admin-password-1')


def test_critical_data_file_lists_system_and_admin():
    users = load_critical_data()['Essential']['Users']
    assert {user['username'] for user in users.values()} == {'system', 'admin'}
    assert all('password' not in user for user in users.values())


def test_insert_critical_data(app, passwords):
    assert not verify_critical_data()

    insert_critical_data()

    admin = User.query.filter_by(username='admin').one()
    assert admin.check_password('admin-password-1')
    assert User.query.filter_by(username='system', is_system=True).count() == 1
    assert Setting.query.count() == 1
    assert verify_critical_data()

    insert_critical_data()
    assert User.query.filter(User.username.in_(['system', 'admin'])).count() == 2


def test_critical_data_requires_passwords(app, monkeypatch):
    monkeypatch.delenv('SYSTEM_USER_PASSWORD', raising=False)
    monkeypatch.delenv('ADMIN_USER_PASSWORD', raising=False)

    with pytest.raises(RuntimeError):
        insert_critical_data()
    assert User.query.filter_by(username='system').first() is None


def test_debug_data_is_inserted_once(app, passwords):
    insert_critical_data()

    summary = insert_debug_data()
    assert summary['Products'] == 4
    assert summary['Technicians'] == 2

    again = insert_debug_data()
    assert set(again.values()) == {0}
    assert Product.query.count() == 4


def test_debug_data_needs_system_user(app):
    with pytest.raises(RuntimeError):
        insert_debug_data()


def test_debug_data_disabled(app):
    assert insert_debug_data(enabled=False) == {}
