from datetime import datetime
from workshop import db
from workshop.data.core.user_created_base import VersionedResourceBase


class Tool(VersionedResourceBase):
    __tablename__ = 'tools'

    STATUSES = ('available', 'in_use', 'maintenance', 'lost', 'retired')

    name = db.Column(db.String(200), nullable=False)
    tool_number = db.Column(db.String(50), unique=True, nullable=False)
    category = db.Column(db.String(100), nullable=True)
    condition = db.Column(db.String(20), nullable=False, default='good')
    status = db.Column(db.String(20), nullable=False, default='available')

    # Availability
    is_available = db.Column(db.Boolean, nullable=False, default=True)
    current_job_id = db.Column(db.Integer, db.ForeignKey('workshop_jobs.id', ondelete='SET NULL'), nullable=True)
    assigned_to_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    assigned_at = db.Column(db.DateTime, nullable=True)
    expected_return = db.Column(db.DateTime, nullable=True)

    # Usage
    usage_count = db.Column(db.Integer, nullable=False, default=0)
    last_used = db.Column(db.DateTime, nullable=True)

    def __repr__(self):
        return f'<Tool {self.tool_number}: {self.name} ({self.status})>'

    @property
    def is_assignable(self):
        return bool(self.is_available) and self.status == 'available'

    def assign(self, job_id, user_id, expected_return=None):
        self.is_available = False
        self.current_job_id = job_id
        self.assigned_to_id = user_id
        self.assigned_at = datetime.utcnow()
        self.expected_return = expected_return
        self.status = 'in_use'

    def release(self, condition=None):
        self.is_available = True
        self.current_job_id = None
        self.assigned_to_id = None
        self.assigned_at = None
        self.expected_return = None
        self.status = 'available'
        if condition:
            self.condition = condition
        self.last_used = datetime.utcnow()
        self.usage_count = (self.usage_count or 0) + 1
