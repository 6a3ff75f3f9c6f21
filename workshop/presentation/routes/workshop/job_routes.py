"""
Job lifecycle endpoints: create, list, fetch, update, schedule, progress,
complete, cancel, delete and the read-only views.
"""
from flask import current_app, request
from flask_login import login_required, current_user

from workshop import limiter
from workshop.business.workshop.job_context import JobContext
from workshop.services.workshop.job_query_service import JobQueryService
from workshop.presentation.routes.workshop.main import jobs_bp, job_endpoint, json_body, ok


@jobs_bp.route('', methods=['POST'])
@login_required
@limiter.limit("120 per minute")
@job_endpoint('Create job')
def create_job():
    context = JobContext.create(json_body(), current_user.id)
    return ok(context.to_dict(), 'Job created', status=201)


@jobs_bp.route('', methods=['GET'])
@login_required
@job_endpoint('List jobs')
def list_jobs():
    jobs_page, pagination = JobQueryService.get_list_data(
        request, default_per_page=current_app.config.get('JOBS_PAGE_SIZE', 10))
    return ok([job.to_dict(include_children=False) for job in jobs_page.items], pagination=pagination)


@jobs_bp.route('/stats', methods=['GET'])
@login_required
@job_endpoint('Job stats')
def job_stats():
    return ok(JobQueryService.get_stats())


@jobs_bp.route('/customer/<int:customer_id>', methods=['GET'])
@login_required
@job_endpoint('Customer jobs')
def customer_jobs(customer_id):
    jobs = JobQueryService.customer_jobs(customer_id)
    return ok([job.to_dict(include_children=False) for job in jobs])


@jobs_bp.route('/<int:job_id>', methods=['GET'])
@login_required
@job_endpoint('Get job')
def get_job(job_id):
    return ok(JobContext.from_id(job_id).to_dict())


@jobs_bp.route('/<int:job_id>', methods=['PUT'])
@login_required
@job_endpoint('Update job')
def update_job(job_id):
    context, invoice = JobContext.from_id(job_id).update(json_body(), current_user.id)
    return ok(context.to_dict(), 'Job updated',
              invoice=invoice.to_dict() if invoice is not None else None)


@jobs_bp.route('/<int:job_id>/schedule', methods=['PUT'])
@login_required
@job_endpoint('Schedule job')
def schedule_job(job_id):
    data = json_body()
    context = JobContext.from_id(job_id).schedule(data.get('start'), data.get('end'), current_user.id)
    return ok(context.to_dict(), 'Job scheduled')


@jobs_bp.route('/<int:job_id>/progress', methods=['PUT'])
@login_required
@job_endpoint('Update job progress')
def update_progress(job_id):
    data = json_body()
    context, invoice = JobContext.from_id(job_id).update_progress(
        data.get('progress'), data.get('status'), current_user.id)
    return ok(context.to_dict(), 'Job progress updated',
              invoice=invoice.to_dict() if invoice is not None else None)


@jobs_bp.route('/<int:job_id>/complete', methods=['POST'])
@login_required
@job_endpoint('Complete job')
def complete_job(job_id):
    context = JobContext.from_id(job_id)
    invoice = context.complete(json_body(), current_user.id)
    message = 'Job completed' if invoice is not None else 'Job completed without invoice'
    return ok(context.to_dict(), message, invoice=invoice.to_dict() if invoice is not None else None)


@jobs_bp.route('/<int:job_id>/cancel', methods=['POST', 'PUT'])
@login_required
@job_endpoint('Cancel job')
def cancel_job(job_id):
    context = JobContext.from_id(job_id).cancel(current_user.id, json_body().get('reason'))
    return ok(context.to_dict(), 'Job cancelled')


@jobs_bp.route('/<int:job_id>', methods=['DELETE'])
@login_required
@job_endpoint('Delete job')
def delete_job(job_id):
    JobContext.from_id(job_id).delete(current_user.id)
    return ok(message='Job deleted')


@jobs_bp.route('/<int:job_id>/analytics', methods=['GET'])
@login_required
@job_endpoint('Job analytics')
def job_analytics(job_id):
    return ok(JobContext.from_id(job_id).analytics())
