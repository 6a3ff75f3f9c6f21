"""
Completion tests: stock movements, returns, invoice totals and the
resilience rules around invoicing and concurrent writes.
"""
import pytest
from sqlalchemy import text
from sqlalchemy.orm.exc import StaleDataError

from workshop import db
from workshop.business.billing.invoice_builder import InvoiceBuilder
from workshop.business.core.unit_of_work import unit_of_work
from workshop.business.errors import InsufficientStockError, ResourceConflictError
from workshop.business.inventory.inventory_manager import InventoryManager
from workshop.business.workshop.resource_reservation_manager import ResourceReservationManager
from workshop.data.billing.invoice import Invoice
from workshop.data.inventory.product import Product
from workshop.data.inventory.stock_movement import StockMovement
from workshop.data.workshop.job import WorkshopJob


def _complete(client, job_id, **payload):
    return client.post(f'/jobs/{job_id}/complete', json=payload)


def test_completion_deducts_used_quantity(authenticated_client, create_job, make_product):
    product = make_product(current_stock=10)
    job = create_job(parts=[{'product': product.id, 'quantityRequired': 4}])

    response = _complete(authenticated_client, job['id'], partsUsed={str(product.id): 4})

    assert response.status_code == 200
    assert db.session.get(Product, product.id).current_stock == 6
    movements = StockMovement.query.filter_by(product_id=product.id).all()
    assert len(movements) == 1
    assert movements[0].movement_type == 'out'
    assert movements[0].quantity == 4
    assert movements[0].reference_type == 'workshop_job'
    assert movements[0].reference_id == job['id']
    assert movements[0].previous_stock == 10
    assert movements[0].new_stock == 6


def test_completion_refuses_to_issue_more_than_stock(authenticated_client, create_job, make_product):
    product = make_product(name='Wiper blade', current_stock=3, selling_price=10.0)
    job = create_job(parts=[{'product': product.id, 'quantityRequired': 2}])

    response = _complete(authenticated_client, job['id'], partsUsed={str(product.id): 50})

    assert response.status_code == 400
    assert response.get_json()['shortages'] == [
        {'product': product.id, 'name': 'Wiper blade', 'available': 3, 'required': 50}]
    assert db.session.get(Product, product.id).current_stock == 3
    assert StockMovement.query.count() == 0
    assert Invoice.query.count() == 0
    assert db.session.get(WorkshopJob, job['id']).status == 'draft'


def test_issue_to_job_never_drives_stock_negative(app, make_product, user):
    product = make_product(current_stock=2)

    with pytest.raises(InsufficientStockError) as exc:
        InventoryManager.issue_to_job(product, 5, None, user.id)

    assert exc.value.shortages[0]['required'] == 5
    assert product.current_stock == 2
    assert StockMovement.query.count() == 0


def test_completion_defaults_used_to_required(authenticated_client, create_job, make_product):
    product = make_product(current_stock=10)
    job = create_job(parts=[{'product': product.id, 'quantityRequired': 3}])

    _complete(authenticated_client, job['id'])

    assert db.session.get(Product, product.id).current_stock == 7
    part = db.session.get(WorkshopJob, job['id']).parts[0]
    assert part.quantity_used == 3
    assert part.quantity_returned == 0


def test_returned_parts_go_back_into_stock(authenticated_client, create_job, make_product):
    product = make_product(current_stock=10, selling_price=10.0)
    job = create_job(parts=[{'product': product.id, 'quantityRequired': 4}])

    response = _complete(authenticated_client, job['id'],
                         partsUsed={str(product.id): 4}, partsReturned={str(product.id): 2})

    assert db.session.get(Product, product.id).current_stock == 8
    movements = StockMovement.query.filter_by(product_id=product.id).order_by(StockMovement.id).all()
    assert [(m.movement_type, m.quantity) for m in movements] == [('out', 4), ('in', 2)]
    # Only the net quantity is billed
    assert response.get_json()['invoice']['items'][0]['quantity'] == 2


def test_invoice_totals(authenticated_client, create_job, make_product):
    filter_ = make_product(name='Oil Filter', selling_price=10.0, tax_rate=0.0, current_stock=5)
    plug = make_product(name='Spark Plug', selling_price=5.0, tax_rate=10.0, current_stock=5)
    job = create_job(parts=[{'product': filter_.id, 'quantityRequired': 2},
                            {'product': plug.id, 'quantityRequired': 1}])

    response = _complete(authenticated_client, job['id'])

    invoice = response.get_json()['invoice']
    assert invoice['subtotal'] == 25.0
    assert invoice['total_tax'] == 0.5
    assert invoice['total'] == 25.5
    assert invoice['balance'] == 25.5
    assert invoice['currency'] == 'USD'
    assert invoice['invoice_number'].startswith('SAL-')
    assert invoice['workshop_job_id'] == job['id']


def test_invoice_uses_default_tax_rate_and_charges(authenticated_client, create_job, make_product):
    product = make_product(selling_price=20.0, tax_rate=None, current_stock=5)
    job = create_job(parts=[{'product': product.id, 'quantityRequired': 1}])

    response = _complete(authenticated_client, job['id'], actualDuration=90, charges=[
        {'name': 'Labour', 'amount': 50, 'taxRate': 0},
        {'name': 'Diagnostics', 'amount': 10, 'taxRate': 20},
    ])

    body = response.get_json()
    # 20 + 10% default tax, 50 untaxed, 10 + 20%
    assert body['invoice']['total'] == 84.0
    assert [item['name'] for item in body['invoice']['items']] == [product.name, 'Labour', 'Diagnostics']
    assert body['data']['actual_duration'] == 90
    assert len(body['data']['charges']) == 2


def test_completion_without_billable_items_has_no_invoice(authenticated_client, create_job):
    job = create_job()
    response = _complete(authenticated_client, job['id'])
    body = response.get_json()
    assert body['data']['status'] == 'completed'
    assert body['invoice'] is None
    assert Invoice.query.count() == 0


def test_invalid_charges_reject_completion(authenticated_client, create_job, make_product):
    product = make_product(current_stock=5)
    job = create_job(parts=[{'product': product.id, 'quantityRequired': 1}])

    response = _complete(authenticated_client, job['id'], charges=[{'name': '', 'amount': -1}])

    assert response.status_code == 400
    assert response.get_json()['errors'] == ['charges[0] needs a name and a non-negative amount']
    assert db.session.get(Product, product.id).current_stock == 5
    assert db.session.get(WorkshopJob, job['id']).status == 'draft'


def test_invoice_failure_does_not_block_completion(authenticated_client, create_job, make_product,
                                                   monkeypatch):
    product = make_product(current_stock=5)
    job = create_job(parts=[{'product': product.id, 'quantityRequired': 2}])

    def broken_build(self, job, consumed, user_id):
        raise RuntimeError('invoice numbering unavailable')

    monkeypatch.setattr(InvoiceBuilder, 'build_for_job', broken_build)
    response = _complete(authenticated_client, job['id'])

    assert response.status_code == 200
    body = response.get_json()
    assert body['data']['status'] == 'completed'
    assert body['invoice'] is None
    assert body['message'] == 'Job completed without invoice'
    assert db.session.get(Product, product.id).current_stock == 3
    assert Invoice.query.count() == 0


def test_completed_job_cannot_be_completed_again(authenticated_client, create_job, make_product):
    product = make_product(current_stock=5)
    job = create_job(parts=[{'product': product.id, 'quantityRequired': 1}])
    _complete(authenticated_client, job['id'])

    response = _complete(authenticated_client, job['id'])

    assert response.status_code == 400
    assert db.session.get(Product, product.id).current_stock == 4
    assert StockMovement.query.count() == 1


def test_stale_stock_write_becomes_conflict(app, make_product, user):
    product = make_product(current_stock=5)
    assert product.version_id == 1

    # Another writer bumps the row version behind this session's back
    db.session.execute(text('UPDATE products SET version_id = version_id + 1 WHERE id = :id'),
                       {'id': product.id})

    with pytest.raises(ResourceConflictError) as exc:
        with unit_of_work('Issue stock'):
            InventoryManager.issue_to_job(product, 1, None, user.id)

    assert exc.value.status_code == 409
    assert StockMovement.query.count() == 0


def test_conflict_is_reported_as_409(authenticated_client, create_job, make_technician, monkeypatch):
    technician = make_technician()
    job = create_job()

    def racing_assign(*args, **kwargs):
        raise StaleDataError('UPDATE statement on table technicians expected to update 1 row(s); 0 were matched.')

    monkeypatch.setattr(ResourceReservationManager, 'assign_technician', racing_assign)
    response = authenticated_client.put(f"/jobs/{job['id']}/assign-technician",
                                        json={'technicianId': technician.id})

    assert response.status_code == 409
    body = response.get_json()
    assert body['success'] is False
    assert 'retry' in body['message']
