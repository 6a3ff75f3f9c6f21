"""
Workshop Job Query Service
Read-side queries for workshop jobs: filtered lists, stats, per-customer
lists and the resources currently free for assignment.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Tuple
from flask import Request
from flask_sqlalchemy.pagination import Pagination
from sqlalchemy import func
from workshop import db
from workshop.data.resources.machine import Machine
from workshop.data.resources.technician import Technician
from workshop.data.resources.tool import Tool
from workshop.data.resources.workstation import WorkStation
from workshop.data.workshop.job import WorkshopJob


class JobQueryService:
    """
    Service for workshop job read models.

    Provides methods for:
    - Building filtered job queries
    - Paginating job lists
    - Aggregated job statistics
    - Listing free resources
    """

    @staticmethod
    def build_filtered_query(
        search: Optional[str] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        customer_id: Optional[int] = None,
        customer_phone: Optional[str] = None,
        include_inactive: bool = False,
    ):
        """
        Build a filtered job query, newest first.

        Args:
            search: Partial match on title, card number or customer name
            status: Exact status
            priority: Exact priority
            customer_id: Jobs of one customer
            customer_phone: Partial match on the raw customer phone
            include_inactive: Include cancelled (inactive) jobs
        """
        query = WorkshopJob.query

        if not include_inactive:
            query = query.filter(WorkshopJob.is_active.is_(True))

        if status:
            query = query.filter(WorkshopJob.status == status)

        if priority:
            query = query.filter(WorkshopJob.priority == priority)

        if customer_id:
            query = query.filter(WorkshopJob.customer_id == customer_id)

        if customer_phone:
            query = query.filter(WorkshopJob.customer_phone.ilike(f"%{customer_phone}%"))

        if search:
            search_term = f"%{search}%"
            query = query.filter(
                db.or_(
                    WorkshopJob.title.ilike(search_term),
                    WorkshopJob.card_number.ilike(search_term),
                    WorkshopJob.customer_name.ilike(search_term),
                )
            )

        return query.order_by(WorkshopJob.created_at.desc(), WorkshopJob.id.desc())

    @staticmethod
    def get_list_data(request: Request, default_per_page: int = 10) -> Tuple[Pagination, Dict[str, Any]]:
        """
        Paginated job list using the request's query string
        (search, status, priority, customer, customerPhone, page, limit).

        Returns:
            Tuple of (pagination object, pagination dict for the response)
        """
        page = max(1, request.args.get('page', 1, type=int) or 1)
        per_page = request.args.get('limit', default_per_page, type=int) or default_per_page
        per_page = max(1, min(per_page, 100))
        # Cancelled jobs are inactive; asking for them by status includes them
        status = request.args.get('status') or None

        query = JobQueryService.build_filtered_query(
            search=request.args.get('search') or None,
            status=status,
            priority=request.args.get('priority') or None,
            customer_id=request.args.get('customer', type=int),
            customer_phone=request.args.get('customerPhone') or None,
            include_inactive=status == 'cancelled',
        )

        jobs_page = query.paginate(page=page, per_page=per_page, error_out=False)
        pagination = {
            'page': page,
            'limit': per_page,
            'total': jobs_page.total,
            'pages': jobs_page.pages,
        }
        return jobs_page, pagination

    @staticmethod
    def customer_jobs(customer_id: int):
        return (WorkshopJob.query
                .filter(WorkshopJob.customer_id == customer_id)
                .order_by(WorkshopJob.created_at.desc(), WorkshopJob.id.desc())
                .all())

    @staticmethod
    def get_stats(now: Optional[datetime] = None) -> Dict[str, Any]:
        """Counts per status and priority, average progress and overdue count"""
        now = now or datetime.utcnow()

        by_status = {status: 0 for status in WorkshopJob.STATUSES}
        for status, count in (db.session.query(WorkshopJob.status, func.count(WorkshopJob.id))
                              .group_by(WorkshopJob.status).all()):
            by_status[status] = count

        by_priority = {priority: 0 for priority in WorkshopJob.PRIORITIES}
        for priority, count in (db.session.query(WorkshopJob.priority, func.count(WorkshopJob.id))
                                .filter(WorkshopJob.is_active.is_(True))
                                .group_by(WorkshopJob.priority).all()):
            by_priority[priority] = count

        average_progress = (db.session.query(func.avg(WorkshopJob.progress))
                            .filter(WorkshopJob.is_active.is_(True))
                            .filter(WorkshopJob.status != 'completed')
                            .scalar())

        overdue = (WorkshopJob.query
                   .filter(WorkshopJob.deadline.isnot(None))
                   .filter(WorkshopJob.deadline < now)
                   .filter(WorkshopJob.status.notin_(('completed', 'cancelled')))
                   .count())

        return {
            'total': sum(by_status.values()),
            'by_status': by_status,
            'by_priority': by_priority,
            'average_progress': round(float(average_progress or 0), 1),
            'overdue': overdue,
        }

    @staticmethod
    def available_resources() -> Dict[str, Any]:
        """Resources that can be assigned right now"""
        technicians = [
            technician for technician in
            Technician.query.filter_by(is_active=True, employment_status='active').order_by(Technician.name).all()
            if technician.is_currently_available
        ]
        tools = Tool.query.filter_by(is_available=True, status='available').order_by(Tool.name).all()
        machines = Machine.query.filter_by(is_available=True, status='operational').order_by(Machine.name).all()
        workstations = (WorkStation.query.filter_by(is_available=True, status='available')
                        .order_by(WorkStation.name).all())

        return {
            'technicians': [t.to_dict(include_audit_fields=False) for t in technicians],
            'tools': [t.to_dict(include_audit_fields=False) for t in tools],
            'machines': [m.to_dict(include_audit_fields=False) for m in machines],
            'workstations': [w.to_dict(include_audit_fields=False) for w in workstations],
        }
