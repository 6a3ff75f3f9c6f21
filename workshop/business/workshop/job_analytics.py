"""
Derived metrics for a single job.
"""

from datetime import datetime
from typing import Any, Dict


class JobAnalytics:

    def __init__(self, job):
        self.job = job

    def task_counts(self) -> Dict[str, int]:
        counts = {'total': len(self.job.tasks), 'completed': 0, 'in_progress': 0, 'todo': 0}
        for task in self.job.tasks:
            if task.status in counts:
                counts[task.status] += 1
        return counts

    def durations(self) -> Dict[str, Any]:
        estimated = sum(task.estimated_duration or 0 for task in self.job.tasks)
        actual = sum(task.actual_duration or 0 for task in self.job.tasks)
        return {
            'estimated_minutes': estimated or (self.job.estimated_duration or 0),
            'actual_minutes': actual or (self.job.actual_duration or 0),
            'variance_minutes': (actual or (self.job.actual_duration or 0))
                                - (estimated or (self.job.estimated_duration or 0)),
        }

    def parts_cost(self) -> float:
        total = 0.0
        for part in self.job.parts:
            quantity = part.quantity_used if part.quantity_used is not None else part.quantity_required
            total += (part.unit_cost or 0) * (quantity or 0)
        return round(total, 2)

    def charges_total(self) -> float:
        return round(sum(charge.amount or 0 for charge in self.job.charges), 2)

    def days_open(self, now=None) -> int:
        if not self.job.created_at:
            return 0
        end = self.job.completed_at or now or datetime.utcnow()
        return max(0, (end - self.job.created_at).days)

    def to_dict(self) -> Dict[str, Any]:
        job = self.job
        return {
            'job_id': job.id,
            'card_number': job.card_number,
            'progress': job.progress,
            'status': job.status,
            'tasks': self.task_counts(),
            'duration': self.durations(),
            'parts_cost': self.parts_cost(),
            'charges_total': self.charges_total(),
            'resources': {
                'technicians': len(job.technicians),
                'tools': len(job.tools),
                'machines': len(job.machines),
                'workstations': len(job.workstations),
                'parts': len(job.parts),
            },
            'days_open': self.days_open(),
            'is_overdue': job.is_overdue,
            'progress_history': [entry.to_dict() for entry in job.progress_history],
        }
