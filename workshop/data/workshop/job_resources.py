"""
Reservation rows linking a job to resource pool entries.

Each row snapshots the resource name so the job history stays readable
after the resource itself is renamed or retired.
"""
from datetime import datetime
from workshop import db


class _JobReservationMixin:
    name = db.Column(db.String(200), nullable=False)
    required_from = db.Column(db.DateTime, nullable=True)
    required_until = db.Column(db.DateTime, nullable=True)
    is_available = db.Column(db.Boolean, nullable=False, default=True)
    assigned_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    returned_at = db.Column(db.DateTime, nullable=True)


class JobTool(_JobReservationMixin, db.Model):
    __tablename__ = 'job_tools'

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey('workshop_jobs.id', ondelete='CASCADE'),
                       nullable=False, index=True)
    tool_id = db.Column(db.Integer, db.ForeignKey('tools.id'), nullable=False)
    assigned_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    job = db.relationship('WorkshopJob', back_populates='tools')
    tool = db.relationship('Tool')

    def to_dict(self):
        return _reservation_dict(self, tool_id=self.tool_id)


class JobMachine(_JobReservationMixin, db.Model):
    __tablename__ = 'job_machines'

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey('workshop_jobs.id', ondelete='CASCADE'),
                       nullable=False, index=True)
    machine_id = db.Column(db.Integer, db.ForeignKey('machines.id'), nullable=False)
    assigned_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    job = db.relationship('WorkshopJob', back_populates='machines')
    machine = db.relationship('Machine')

    def to_dict(self):
        return _reservation_dict(self, machine_id=self.machine_id)


class JobWorkStation(_JobReservationMixin, db.Model):
    __tablename__ = 'job_workstations'

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey('workshop_jobs.id', ondelete='CASCADE'),
                       nullable=False, index=True)
    workstation_id = db.Column(db.Integer, db.ForeignKey('workstations.id'), nullable=False)
    assigned_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    job = db.relationship('WorkshopJob', back_populates='workstations')
    workstation = db.relationship('WorkStation')

    def to_dict(self):
        return _reservation_dict(self, workstation_id=self.workstation_id)


class JobTechnician(db.Model):
    __tablename__ = 'job_technicians'

    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey('workshop_jobs.id', ondelete='CASCADE'),
                       nullable=False, index=True)
    technician_id = db.Column(db.Integer, db.ForeignKey('technicians.id'), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    role = db.Column(db.String(50), nullable=False, default='technician')
    assigned_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    assigned_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    job = db.relationship('WorkshopJob', back_populates='technicians')
    technician = db.relationship('Technician')

    __table_args__ = (
        db.UniqueConstraint('job_id', 'technician_id', name='uq_job_technician'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'technician_id': self.technician_id,
            'name': self.name,
            'role': self.role,
            'assigned_at': self.assigned_at.isoformat() if self.assigned_at else None,
            'assigned_by_id': self.assigned_by_id,
        }


def _reservation_dict(row, **resource_ref):
    data = {
        'id': row.id,
        'name': row.name,
        'required_from': row.required_from.isoformat() if row.required_from else None,
        'required_until': row.required_until.isoformat() if row.required_until else None,
        'is_available': row.is_available,
        'assigned_at': row.assigned_at.isoformat() if row.assigned_at else None,
        'assigned_by_id': row.assigned_by_id,
        'returned_at': row.returned_at.isoformat() if row.returned_at else None,
    }
    data.update(resource_ref)
    return data
