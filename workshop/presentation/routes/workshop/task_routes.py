from flask_login import login_required, current_user

from workshop.business.workshop.job_context import JobContext
from workshop.presentation.routes.workshop.main import jobs_bp, job_endpoint, json_body, ok


@jobs_bp.route('/<int:job_id>/tasks', methods=['POST'])
@login_required
@job_endpoint('Add task')
def add_task(job_id):
    context = JobContext.from_id(job_id)
    task = context.add_task(json_body(), current_user.id)
    return ok(context.to_dict(), 'Task added', status=201, task=task.to_dict())


@jobs_bp.route('/<int:job_id>/tasks/<int:task_id>', methods=['PUT'])
@login_required
@job_endpoint('Update task')
def update_task(job_id, task_id):
    context = JobContext.from_id(job_id)
    task = context.update_task(task_id, json_body(), current_user.id)
    return ok(context.to_dict(), 'Task updated', task=task.to_dict())
