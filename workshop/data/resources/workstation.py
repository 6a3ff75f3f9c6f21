from workshop import db
from workshop.data.core.user_created_base import VersionedResourceBase


class WorkStation(VersionedResourceBase):
    __tablename__ = 'workstations'

    STATUSES = ('available', 'occupied', 'maintenance', 'out_of_order')

    name = db.Column(db.String(200), nullable=False)
    station_number = db.Column(db.String(50), unique=True, nullable=False)
    station_type = db.Column(db.String(50), nullable=False, default='general')
    status = db.Column(db.String(20), nullable=False, default='available')

    is_available = db.Column(db.Boolean, nullable=False, default=True)
    current_job_id = db.Column(db.Integer, db.ForeignKey('workshop_jobs.id', ondelete='SET NULL'), nullable=True)
    booked_until = db.Column(db.DateTime, nullable=True)
    booked_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    def __repr__(self):
        return f'<WorkStation {self.station_number}: {self.name} ({self.status})>'

    @property
    def is_bookable(self):
        return bool(self.is_available) and self.status == 'available'

    def book(self, job_id, user_id, until=None):
        self.is_available = False
        self.current_job_id = job_id
        self.booked_until = until
        self.booked_by_id = user_id
        self.status = 'occupied'

    def release(self):
        self.is_available = True
        self.current_job_id = None
        self.booked_until = None
        self.booked_by_id = None
        self.status = 'available'
