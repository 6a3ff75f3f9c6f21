"""
Resource assignment endpoints (technicians, tools, machines, workstations,
parts) and the parts availability checks.
"""
from flask_login import login_required, current_user

from workshop.business.workshop.job_context import JobContext
from workshop.business.workshop.payloads import first_present
from workshop.services.workshop.job_query_service import JobQueryService
from workshop.presentation.routes.workshop.main import jobs_bp, job_endpoint, json_body, ok, fail


@jobs_bp.route('/<int:job_id>/assign-technician', methods=['PUT'])
@login_required
@job_endpoint('Assign technician')
def assign_technician(job_id):
    data = json_body()
    context = JobContext.from_id(job_id).assign_technician(
        first_present(data, 'technicianId', 'technician'), current_user.id, data.get('role') or 'technician')
    return ok(context.to_dict(), 'Technician assigned')


@jobs_bp.route('/<int:job_id>/remove-technician', methods=['PUT'])
@login_required
@job_endpoint('Remove technician')
def remove_technician(job_id):
    data = json_body()
    context = JobContext.from_id(job_id).remove_technician(
        first_present(data, 'technicianId', 'technician'), current_user.id)
    return ok(context.to_dict(), 'Technician removed')


@jobs_bp.route('/<int:job_id>/assign-resources', methods=['POST'])
@login_required
@job_endpoint('Assign resources')
def assign_resources(job_id):
    context = JobContext.from_id(job_id)
    result = context.assign_resources(json_body(), current_user.id)
    assigned_count = sum(len(ids) for ids in result['assigned'].values())
    if result['errors'] and not assigned_count:
        return fail('No resources could be assigned', 400, errors=result['errors'])
    return ok(context.to_dict(), 'Resources assigned', assigned=result['assigned'], errors=result['errors'])


@jobs_bp.route('/<int:job_id>/assign-tool', methods=['POST'])
@login_required
@job_endpoint('Assign tool')
def assign_tool(job_id):
    data = json_body()
    context = JobContext.from_id(job_id).assign_tool(
        first_present(data, 'toolId', 'tool'), current_user.id,
        data.get('requiredFrom'), data.get('requiredUntil'))
    return ok(context.to_dict(), 'Tool assigned')


@jobs_bp.route('/<int:job_id>/book-machine', methods=['POST'])
@login_required
@job_endpoint('Book machine')
def book_machine(job_id):
    data = json_body()
    context = JobContext.from_id(job_id).book_machine(
        first_present(data, 'machineId', 'machine'), current_user.id,
        data.get('requiredFrom'), data.get('requiredUntil'))
    return ok(context.to_dict(), 'Machine booked')


@jobs_bp.route('/<int:job_id>/book-workstation', methods=['POST'])
@login_required
@job_endpoint('Book workstation')
def book_workstation(job_id):
    data = json_body()
    context = JobContext.from_id(job_id).book_workstation(
        first_present(data, 'workstationId', 'workstation', 'workStation'), current_user.id,
        data.get('requiredFrom'), data.get('requiredUntil'))
    return ok(context.to_dict(), 'Workstation booked')


@jobs_bp.route('/<int:job_id>/parts', methods=['POST'])
@login_required
@job_endpoint('Add part')
def add_part(job_id):
    data = json_body()
    context = JobContext.from_id(job_id).add_part(
        first_present(data, 'productId', 'product'), first_present(data, 'quantity', 'quantityRequired'),
        current_user.id)
    return ok(context.to_dict(), 'Part added')


@jobs_bp.route('/<int:job_id>/check-parts', methods=['GET'])
@login_required
@job_endpoint('Check parts')
def check_parts(job_id):
    shortages = JobContext.from_id(job_id).check_parts()
    return ok({'available': not shortages, 'shortages': shortages})


@jobs_bp.route('/<int:job_id>/reserve-parts', methods=['POST'])
@login_required
@job_endpoint('Reserve parts')
def reserve_parts(job_id):
    context = JobContext.from_id(job_id)
    reserved = context.reserve_parts(current_user.id)
    return ok(context.to_dict(), f'{reserved} parts reserved')


@jobs_bp.route('/<int:job_id>/available-resources', methods=['GET'])
@login_required
@job_endpoint('Available resources')
def available_resources(job_id):
    JobContext.from_id(job_id)
    return ok(JobQueryService.available_resources())
