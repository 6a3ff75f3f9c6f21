import pytest

from workshop.business.core.customer_resolver import CustomerResolver
from workshop.business.errors import NotFoundError


def test_explicit_id_wins_over_phone(make_customer):
    by_phone = make_customer(first_name='Phone', phone='+15550001')
    by_id = make_customer(first_name='Explicit', phone='+15550002')

    assert CustomerResolver.resolve_customer('+15550001', by_id.id) == by_id
    assert CustomerResolver.resolve_customer('+15550001') == by_phone


def test_unknown_explicit_id_is_not_found(app):
    with pytest.raises(NotFoundError) as exc:
        CustomerResolver.resolve_customer(None, 404)
    assert exc.value.status_code == 404


def test_phone_is_trimmed_and_exact(make_customer):
    customer = make_customer(phone='+15551234')
    assert CustomerResolver.resolve_customer('  +15551234 ') == customer
    assert CustomerResolver.resolve_customer('5551234') is None


def test_inactive_customer_is_treated_as_guest(make_customer):
    make_customer(phone='+15557777', is_active=False)
    assert CustomerResolver.resolve_customer('+15557777') is None


def test_no_identity_is_a_guest(app):
    assert CustomerResolver.resolve_customer() is None
    assert CustomerResolver.resolve_customer('', '') is None
