from datetime import datetime
from workshop import db
from workshop.data.core.user_created_base import UserCreatedBase, VersionedResourceBase


class Technician(VersionedResourceBase):
    __tablename__ = 'technicians'

    EMPLOYMENT_STATUSES = ('active', 'on_leave', 'terminated', 'retired')

    name = db.Column(db.String(200), nullable=False)
    employee_id = db.Column(db.String(50), unique=True, nullable=False)
    department = db.Column(db.String(100), nullable=True)
    position = db.Column(db.String(100), nullable=True)
    employment_status = db.Column(db.String(20), nullable=False, default='active')
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    hourly_rate = db.Column(db.Float, nullable=False, default=0.0)

    # Workload
    max_concurrent_jobs = db.Column(db.Integer, nullable=False, default=3)
    current_workload = db.Column(db.Integer, nullable=False, default=0)
    total_jobs_completed = db.Column(db.Integer, nullable=False, default=0)
    last_active_date = db.Column(db.DateTime, nullable=True)

    leaves = db.relationship('TechnicianLeave', back_populates='technician',
                             cascade='all, delete-orphan', lazy='select')
    current_jobs = db.relationship('TechnicianJobAssignment', back_populates='technician',
                                   cascade='all, delete-orphan', lazy='select')

    def __repr__(self):
        return f'<Technician {self.employee_id}: {self.name}>'

    def current_leave(self, now=None):
        now = now or datetime.utcnow()
        for leave in self.leaves:
            if leave.status == 'approved' and leave.start_date <= now <= leave.end_date:
                return leave
        return None

    @property
    def is_currently_available(self):
        """Active, not on approved leave, and below the concurrent job limit"""
        if self.employment_status != 'active' or not self.is_active:
            return False
        if self.current_leave() is not None:
            return False
        return (self.current_workload or 0) < (self.max_concurrent_jobs or 0)

    def is_assigned_to(self, job_id):
        return any(assignment.job_id == job_id for assignment in self.current_jobs)

    def assign_job(self, job_id, role='technician'):
        self.current_jobs.append(TechnicianJobAssignment(job_id=job_id, role=role))
        self.current_workload = (self.current_workload or 0) + 1

    def remove_job(self, job_id):
        """Drop the job from the current-jobs list; returns False when it was not there"""
        assignment = next((a for a in self.current_jobs if a.job_id == job_id), None)
        if assignment is None:
            return False
        self.current_jobs.remove(assignment)
        self.current_workload = max(0, (self.current_workload or 0) - 1)
        return True

    def complete_job(self, job_id):
        if self.remove_job(job_id):
            self.total_jobs_completed = (self.total_jobs_completed or 0) + 1
            self.last_active_date = datetime.utcnow()
            return True
        return False

    def to_dict(self, include_audit_fields=True, exclude=None):
        data = super().to_dict(include_audit_fields, exclude)
        data['is_currently_available'] = self.is_currently_available
        data['current_job_ids'] = [a.job_id for a in self.current_jobs]
        return data


class TechnicianLeave(UserCreatedBase):
    __tablename__ = 'technician_leaves'

    technician_id = db.Column(db.Integer, db.ForeignKey('technicians.id'), nullable=False, index=True)
    leave_type = db.Column(db.String(30), nullable=False, default='annual')
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)
    status = db.Column(db.String(20), nullable=False, default='pending')  # pending, approved, rejected
    reason = db.Column(db.String(500), nullable=True)

    technician = db.relationship('Technician', back_populates='leaves')


class TechnicianJobAssignment(db.Model):
    """One row per job the technician is currently working on"""
    __tablename__ = 'technician_job_assignments'

    id = db.Column(db.Integer, primary_key=True)
    technician_id = db.Column(db.Integer, db.ForeignKey('technicians.id'), nullable=False, index=True)
    job_id = db.Column(db.Integer, db.ForeignKey('workshop_jobs.id', ondelete='CASCADE'),
                       nullable=False, index=True)
    role = db.Column(db.String(50), nullable=False, default='technician')
    assigned_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    technician = db.relationship('Technician', back_populates='current_jobs')

    __table_args__ = (
        db.UniqueConstraint('technician_id', 'job_id', name='uq_technician_job_assignment'),
    )
