from datetime import datetime
from workshop import db


class JobProgressEntry(db.Model):
    """Append-only audit entry; rows are never updated or deleted on their own"""
    __tablename__ = 'job_progress_history'

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey('workshop_jobs.id', ondelete='CASCADE'),
                       nullable=False, index=True)
    progress = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(20), nullable=False)
    step = db.Column(db.String(50), nullable=False)
    message = db.Column(db.String(500), nullable=True)
    actor_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    timestamp = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    job = db.relationship('WorkshopJob', back_populates='progress_history')

    def to_dict(self):
        return {
            'progress': self.progress,
            'status': self.status,
            'step': self.step,
            'message': self.message,
            'actor_id': self.actor_id,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
        }
