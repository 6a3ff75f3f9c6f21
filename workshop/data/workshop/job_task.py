from workshop import db
from workshop.data.core.user_created_base import UserCreatedBase


class JobTask(UserCreatedBase):
    __tablename__ = 'job_tasks'

    STATUSES = ('todo', 'in_progress', 'review', 'completed', 'cancelled')

    job_id = db.Column(db.Integer, db.ForeignKey('workshop_jobs.id', ondelete='CASCADE'),
                       nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    assignee_id = db.Column(db.Integer, db.ForeignKey('technicians.id'), nullable=True)
    assignee_name = db.Column(db.String(200), nullable=True)
    status = db.Column(db.String(20), nullable=False, default='todo')
    priority = db.Column(db.String(20), nullable=False, default='medium')
    estimated_duration = db.Column(db.Integer, nullable=True)  # minutes
    actual_duration = db.Column(db.Integer, nullable=True)  # minutes
    started_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    job = db.relationship('WorkshopJob', back_populates='tasks')

    def __repr__(self):
        return f'<JobTask {self.id}: {self.title} ({self.status})>'
