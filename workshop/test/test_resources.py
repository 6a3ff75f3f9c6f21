"""
Resource assignment tests: individual and bulk assignment, release on
cancellation and deletion, parts checks and task progress.
"""
from datetime import datetime, timedelta

from workshop import db
from workshop.data.inventory.product import Product
from workshop.data.resources.machine import Machine
from workshop.data.resources.technician import Technician, TechnicianLeave
from workshop.data.resources.tool import Tool
from workshop.data.resources.workstation import WorkStation
from workshop.data.workshop.job import WorkshopJob

SCHEDULE = {'start': '2026-10-20T08:00:00Z', 'end': '2026-10-20T17:00:00Z'}


def test_assign_technician_on_draft_job_keeps_status(authenticated_client, create_job, make_technician):
    technician = make_technician()
    job = create_job()

    response = authenticated_client.put(f"/jobs/{job['id']}/assign-technician",
                                        json={'technicianId': technician.id, 'role': 'lead'})

    data = response.get_json()['data']
    assert data['status'] == 'draft'
    assert data['progress'] == 10
    assert data['technicians'][0]['role'] == 'lead'
    assert db.session.get(Technician, technician.id).current_jobs[0].job_id == job['id']


def test_unavailable_technician_is_rejected(authenticated_client, create_job, make_technician, user):
    busy = make_technician(name='Busy', max_concurrent_jobs=1, current_workload=1)
    on_leave = make_technician(name='On leave')
    now = datetime.utcnow()
    db.session.add(TechnicianLeave(technician_id=on_leave.id, status='approved',
                                   start_date=now - timedelta(days=1), end_date=now + timedelta(days=1)))
    db.session.commit()
    job = create_job()

    for technician in (busy, on_leave):
        response = authenticated_client.put(f"/jobs/{job['id']}/assign-technician",
                                            json={'technicianId': technician.id})
        assert response.status_code == 400
        assert response.get_json()['message'] == f'Technician {technician.name} is not available'


def test_technician_cannot_be_assigned_twice(authenticated_client, create_job, make_technician):
    technician = make_technician()
    job = create_job()
    url = f"/jobs/{job['id']}/assign-technician"
    authenticated_client.put(url, json={'technicianId': technician.id})

    response = authenticated_client.put(url, json={'technicianId': technician.id})

    assert response.status_code == 400
    assert db.session.get(Technician, technician.id).current_workload == 1


def test_remove_technician(authenticated_client, create_job, make_technician):
    technician = make_technician()
    job = create_job()
    authenticated_client.put(f"/jobs/{job['id']}/assign-technician", json={'technicianId': technician.id})

    response = authenticated_client.put(f"/jobs/{job['id']}/remove-technician",
                                        json={'technicianId': technician.id})

    assert response.status_code == 200
    assert response.get_json()['data']['technicians'] == []
    assert db.session.get(Technician, technician.id).current_workload == 0

    response = authenticated_client.put(f"/jobs/{job['id']}/remove-technician",
                                        json={'technicianId': technician.id})
    assert response.status_code == 404


def test_unknown_technician_is_404(authenticated_client, create_job):
    job = create_job()
    response = authenticated_client.put(f"/jobs/{job['id']}/assign-technician", json={'technicianId': 77})
    assert response.status_code == 404
    assert response.get_json()['message'] == 'Technician 77 not found'


def test_individual_tool_machine_and_workstation(authenticated_client, create_job, make_tool,
                                                 make_machine, make_workstation):
    tool = make_tool()
    machine = make_machine()
    station = make_workstation()
    job = create_job(scheduled=SCHEDULE)

    response = authenticated_client.post(f"/jobs/{job['id']}/assign-tool", json={
        'toolId': tool.id, 'requiredFrom': SCHEDULE['start'], 'requiredUntil': SCHEDULE['end']})
    data = response.get_json()['data']
    assert data['status'] == 'in_progress'
    assert data['progress'] == 20

    authenticated_client.post(f"/jobs/{job['id']}/book-machine", json={'machineId': machine.id})
    authenticated_client.post(f"/jobs/{job['id']}/book-workstation", json={'workstationId': station.id})

    tool = db.session.get(Tool, tool.id)
    assert tool.is_available is False
    assert tool.status == 'in_use'
    assert tool.expected_return == datetime(2026, 10, 20, 17, 0)
    assert db.session.get(Machine, machine.id).current_job_id == job['id']
    assert db.session.get(WorkStation, station.id).status == 'occupied'

    # Already taken
    other = create_job(title='Other job')
    response = authenticated_client.post(f"/jobs/{other['id']}/assign-tool", json={'toolId': tool.id})
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Tool Torque Wrench is not available'


def test_machine_under_maintenance_cannot_be_booked(authenticated_client, create_job, make_machine):
    machine = make_machine(status='maintenance')
    job = create_job()
    response = authenticated_client.post(f"/jobs/{job['id']}/book-machine", json={'machineId': machine.id})
    assert response.status_code == 400
    assert 'not operational' in response.get_json()['message']


def test_add_part_merges_quantities(authenticated_client, create_job, make_product):
    product = make_product(current_stock=5)
    job = create_job(parts=[{'product': product.id, 'quantityRequired': 2}])

    response = authenticated_client.post(f"/jobs/{job['id']}/parts",
                                         json={'productId': product.id, 'quantity': 3})
    parts = response.get_json()['data']['parts']
    assert len(parts) == 1
    assert parts[0]['quantity_required'] == 5

    response = authenticated_client.post(f"/jobs/{job['id']}/parts",
                                         json={'productId': product.id, 'quantity': 1})
    assert response.status_code == 400
    assert response.get_json()['shortages'][0]['required'] == 6
    assert db.session.get(Product, product.id).current_stock == 5


def test_bulk_assignment_keeps_successes_and_reports_failures(
        authenticated_client, create_job, make_technician, make_tool, make_machine, make_product):
    free = make_technician(name='Free')
    inactive = make_technician(name='Inactive', is_active=False)
    tool = make_tool()
    broken = make_machine(status='maintenance')
    in_stock = make_product(name='Oil Filter', current_stock=10)
    short = make_product(name='Brake disc', current_stock=1)
    job = create_job(scheduled=SCHEDULE)

    response = authenticated_client.post(f"/jobs/{job['id']}/assign-resources", json={
        'technicians': [{'technicianId': free.id, 'role': 'lead'}, inactive.id],
        'tools': [tool.id, 999],
        'machines': [{'machineId': broken.id}],
        'parts': [{'productId': in_stock.id, 'quantity': 2}, {'productId': short.id, 'quantity': 3}],
    })

    assert response.status_code == 200
    body = response.get_json()
    assert body['assigned'] == {
        'technicians': [free.id], 'tools': [tool.id], 'machines': [], 'workstations': [], 'parts': [in_stock.id],
    }
    failed = {(error['type'], error['id']) for error in body['errors']}
    assert failed == {('technician', inactive.id), ('tool', 999), ('machine', broken.id), ('part', short.id)}

    job_data = body['data']
    assert job_data['status'] == 'in_progress'
    assert job_data['progress'] == 30
    assert [t['technician_id'] for t in job_data['technicians']] == [free.id]
    assert [p['product_id'] for p in job_data['parts']] == [in_stock.id]
    assert db.session.get(Machine, broken.id).current_job_id is None


def test_bulk_assignment_with_only_failures_is_400(authenticated_client, create_job):
    job = create_job()
    response = authenticated_client.post(f"/jobs/{job['id']}/assign-resources", json={'tools': [404]})
    assert response.status_code == 400
    assert response.get_json()['errors'] == [{'type': 'tool', 'id': 404, 'message': 'Tool 404 not found'}]


def _assign_everything(client, job_id, technician, tool, machine, station):
    response = client.post(f'/jobs/{job_id}/assign-resources', json={
        'technicians': [technician.id], 'tools': [tool.id],
        'machines': [machine.id], 'workstations': [station.id],
    })
    assert response.get_json()['errors'] == []


def test_cancel_releases_every_resource_once(authenticated_client, create_job, make_technician, make_tool,
                                             make_machine, make_workstation):
    technician, tool = make_technician(), make_tool()
    machine, station = make_machine(), make_workstation()
    job = create_job(scheduled=SCHEDULE)
    _assign_everything(authenticated_client, job['id'], technician, tool, machine, station)

    response = authenticated_client.post(f"/jobs/{job['id']}/cancel", json={'reason': 'Customer withdrew'})

    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['status'] == 'cancelled'
    assert data['is_active'] is False
    assert data['progress_history'][-1]['message'] == 'Customer withdrew'
    assert db.session.get(Technician, technician.id).current_workload == 0
    assert db.session.get(Tool, tool.id).is_available is True
    assert db.session.get(Machine, machine.id).is_available is True
    assert db.session.get(WorkStation, station.id).status == 'available'
    usage_count = db.session.get(Tool, tool.id).usage_count

    second = authenticated_client.post(f"/jobs/{job['id']}/cancel")

    assert second.status_code == 400
    assert second.get_json() == {'success': False, 'message': 'Job is already cancelled'}
    assert db.session.get(Technician, technician.id).current_workload == 0
    assert db.session.get(Tool, tool.id).usage_count == usage_count


def test_released_tool_held_by_another_job_is_untouched(authenticated_client, create_job, make_tool):
    tool = make_tool()
    first = create_job(title='First')
    authenticated_client.post(f"/jobs/{first['id']}/assign-tool", json={'toolId': tool.id})
    authenticated_client.post(f"/jobs/{first['id']}/cancel")
    second = create_job(title='Second')
    authenticated_client.post(f"/jobs/{second['id']}/assign-tool", json={'toolId': tool.id})

    authenticated_client.delete(f"/jobs/{first['id']}")

    assert db.session.get(Tool, tool.id).current_job_id == second['id']


def test_delete_releases_resources(authenticated_client, create_job, make_technician, make_tool,
                                   make_machine, make_workstation):
    technician, tool = make_technician(), make_tool()
    machine, station = make_machine(), make_workstation()
    job = create_job()
    _assign_everything(authenticated_client, job['id'], technician, tool, machine, station)

    response = authenticated_client.delete(f"/jobs/{job['id']}")

    assert response.status_code == 200
    assert db.session.get(WorkshopJob, job['id']) is None
    assert db.session.get(Technician, technician.id).current_jobs == []
    assert db.session.get(Tool, tool.id).is_available is True
    assert db.session.get(Machine, machine.id).is_available is True
    assert db.session.get(WorkStation, station.id).is_available is True


def test_check_and_reserve_parts(authenticated_client, create_job, make_product):
    product = make_product(current_stock=4)
    job = create_job(parts=[{'product': product.id, 'quantityRequired': 3}])

    data = authenticated_client.get(f"/jobs/{job['id']}/check-parts").get_json()['data']
    assert data == {'available': True, 'shortages': []}

    response = authenticated_client.post(f"/jobs/{job['id']}/reserve-parts")
    assert response.status_code == 200
    assert response.get_json()['data']['parts'][0]['reserved_at'] is not None

    product = db.session.get(Product, product.id)
    product.current_stock = 2
    db.session.commit()

    data = authenticated_client.get(f"/jobs/{job['id']}/check-parts").get_json()['data']
    assert data['available'] is False
    assert data['shortages'][0]['required'] == 3
    assert db.session.get(WorkshopJob, job['id']).status == 'draft'


def test_available_resources(authenticated_client, create_job, make_technician, make_tool, make_machine):
    make_technician(name='Free')
    make_technician(name='Gone', employment_status='terminated')
    taken = make_tool(name='Taken')
    make_tool(name='Spare')
    make_machine(status='maintenance')
    job = create_job()
    authenticated_client.post(f"/jobs/{job['id']}/assign-tool", json={'toolId': taken.id})

    data = authenticated_client.get(f"/jobs/{job['id']}/available-resources").get_json()['data']

    assert [t['name'] for t in data['technicians']] == ['Free']
    assert [t['name'] for t in data['tools']] == ['Spare']
    assert data['machines'] == []


def test_task_progress_follows_ratio_policy(authenticated_client, create_job):
    job = create_job(tasks=[{'title': 'Inspect'}, {'title': 'Repair'}])
    task_ids = [task['id'] for task in job['tasks']]

    response = authenticated_client.put(f"/jobs/{job['id']}/tasks/{task_ids[0]}", json={'status': 'in_progress'})
    task = response.get_json()['task']
    assert task['started_at'] is not None
    assert task['completed_at'] is None

    response = authenticated_client.put(f"/jobs/{job['id']}/tasks/{task_ids[0]}", json={'status': 'completed'})
    body = response.get_json()
    assert body['task']['completed_at'] is not None
    assert body['data']['progress'] == 50

    response = authenticated_client.post(f"/jobs/{job['id']}/tasks", json={'title': 'Road test'})
    assert response.status_code == 201
    assert response.get_json()['data']['progress'] == 33


def test_task_progress_with_incremental_policy(app, authenticated_client, create_job):
    app.config['PROGRESS_POLICY'] = 'incremental'
    job = create_job(tasks=[{'title': 'Inspect'}, {'title': 'Repair'}])
    task_ids = [task['id'] for task in job['tasks']]

    authenticated_client.put(f"/jobs/{job['id']}/tasks/{task_ids[0]}", json={'status': 'completed'})
    response = authenticated_client.put(f"/jobs/{job['id']}/tasks/{task_ids[1]}", json={'status': 'completed'})
    assert response.get_json()['data']['progress'] == 40

    # Reopening a task never lowers progress under this policy
    response = authenticated_client.put(f"/jobs/{job['id']}/tasks/{task_ids[1]}", json={'status': 'todo'})
    assert response.get_json()['data']['progress'] == 40


def test_unknown_task_is_404(authenticated_client, create_job):
    job = create_job()
    response = authenticated_client.put(f"/jobs/{job['id']}/tasks/999", json={'status': 'completed'})
    assert response.status_code == 404
    assert response.get_json()['message'] == 'Task not found'
