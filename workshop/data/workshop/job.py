from datetime import datetime
from workshop import db
from workshop.data.core.user_created_base import UserCreatedBase


class WorkshopJob(UserCreatedBase):
    """
    Aggregate root for a unit of workshop work.

    Child rows (tasks, parts, resource reservations, progress history, charges)
    are owned by the job and deleted with it.
    """
    __tablename__ = 'workshop_jobs'

    STATUSES = ('draft', 'scheduled', 'in_progress', 'on_hold', 'completed', 'cancelled')
    PRIORITIES = ('low', 'medium', 'high', 'urgent')

    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    priority = db.Column(db.String(20), nullable=False, default='medium')
    status = db.Column(db.String(20), nullable=False, default='draft', index=True)
    progress = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    card_number = db.Column(db.String(20), unique=True, nullable=True)

    # Customer (customer_id is None for guests; raw phone/name are kept either way)
    customer_id = db.Column(db.Integer, db.ForeignKey('customers.id'), nullable=True, index=True)
    customer_phone = db.Column(db.String(30), nullable=True, index=True)
    customer_name = db.Column(db.String(200), nullable=True)

    # Schedule
    deadline = db.Column(db.DateTime, nullable=True)
    scheduled_start = db.Column(db.DateTime, nullable=True)
    scheduled_end = db.Column(db.DateTime, nullable=True)
    estimated_duration = db.Column(db.Integer, nullable=True)  # minutes

    # Job card header
    repair_request = db.Column(db.Text, nullable=True)
    vehicle_make = db.Column(db.String(100), nullable=True)
    vehicle_model = db.Column(db.String(100), nullable=True)
    vehicle_reg_number = db.Column(db.String(50), nullable=True)
    vehicle_odometer = db.Column(db.Integer, nullable=True)

    # Completion details, written once
    actual_duration = db.Column(db.Integer, nullable=True)  # minutes
    completion_notes = db.Column(db.Text, nullable=True)
    completed_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)

    last_updated_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    customer = db.relationship('Customer', back_populates='jobs')
    completed_by = db.relationship('User', foreign_keys=[completed_by_id])

    tasks = db.relationship('JobTask', back_populates='job', cascade='all, delete-orphan',
                            order_by='JobTask.id')
    parts = db.relationship('JobPart', back_populates='job', cascade='all, delete-orphan',
                            order_by='JobPart.id')
    tools = db.relationship('JobTool', back_populates='job', cascade='all, delete-orphan',
                            order_by='JobTool.id')
    machines = db.relationship('JobMachine', back_populates='job', cascade='all, delete-orphan',
                               order_by='JobMachine.id')
    workstations = db.relationship('JobWorkStation', back_populates='job', cascade='all, delete-orphan',
                                   order_by='JobWorkStation.id')
    technicians = db.relationship('JobTechnician', back_populates='job', cascade='all, delete-orphan',
                                  order_by='JobTechnician.id')
    progress_history = db.relationship('JobProgressEntry', back_populates='job', cascade='all, delete-orphan',
                                       order_by='JobProgressEntry.id')
    charges = db.relationship('JobCharge', back_populates='job', cascade='all, delete-orphan',
                              order_by='JobCharge.id')
    invoice = db.relationship('Invoice', back_populates='workshop_job', uselist=False)

    def __repr__(self):
        return f'<WorkshopJob {self.id}: {self.title} ({self.status})>'

    @property
    def is_terminal(self):
        return self.status in ('completed', 'cancelled')

    @property
    def is_overdue(self):
        return bool(self.deadline) and self.deadline < datetime.utcnow() and not self.is_terminal

    @staticmethod
    def generate_card_number(now=None):
        """e.g. JC-202610-0001; one past the highest number issued this month"""
        now = now or datetime.utcnow()
        prefix = f"JC-{now.year}{now.month:02d}-"
        latest = db.session.query(db.func.max(WorkshopJob.card_number)).filter(
            WorkshopJob.card_number.like(f"{prefix}%")
        ).scalar()
        sequence = int(latest[len(prefix):]) + 1 if latest else 1
        return f"{prefix}{sequence:04d}"

    def find_part(self, product_id):
        return next((part for part in self.parts if part.product_id == product_id), None)

    def find_technician(self, technician_id):
        return next((entry for entry in self.technicians if entry.technician_id == technician_id), None)

    def find_task(self, task_id):
        return next((task for task in self.tasks if task.id == task_id), None)

    def to_dict(self, include_audit_fields=True, exclude=None, include_children=True):
        data = super().to_dict(include_audit_fields, exclude)
        data['invoice_id'] = self.invoice.id if self.invoice is not None else None
        data['is_overdue'] = self.is_overdue
        if include_children:
            data['tasks'] = [task.to_dict() for task in self.tasks]
            data['parts'] = [part.to_dict() for part in self.parts]
            data['tools'] = [tool.to_dict() for tool in self.tools]
            data['machines'] = [machine.to_dict() for machine in self.machines]
            data['workstations'] = [station.to_dict() for station in self.workstations]
            data['technicians'] = [tech.to_dict() for tech in self.technicians]
            data['progress_history'] = [entry.to_dict() for entry in self.progress_history]
            data['charges'] = [charge.to_dict() for charge in self.charges]
        return data
