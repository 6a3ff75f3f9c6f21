"""
Model registration for the workshop backend

Importing a model module registers its table with SQLAlchemy; create_app
calls register_models() so relationship strings resolve before first use.
"""

from workshop.utils.logger import get_logger

logger = get_logger("workshop.data.build")


def register_models():
    import workshop.data.core.user_info.user  # noqa: F401
    import workshop.data.core.customer  # noqa: F401
    import workshop.data.core.setting  # noqa: F401
    import workshop.data.inventory.product  # noqa: F401
    import workshop.data.inventory.stock_movement  # noqa: F401
    import workshop.data.resources.technician  # noqa: F401
    import workshop.data.resources.tool  # noqa: F401
    import workshop.data.resources.machine  # noqa: F401
    import workshop.data.resources.workstation  # noqa: F401
    import workshop.data.workshop.job  # noqa: F401
    import workshop.data.workshop.job_task  # noqa: F401
    import workshop.data.workshop.job_part  # noqa: F401
    import workshop.data.workshop.job_resources  # noqa: F401
    import workshop.data.workshop.progress_history  # noqa: F401
    import workshop.data.workshop.job_charge  # noqa: F401
    import workshop.data.billing.invoice  # noqa: F401

    logger.debug("Workshop models registered")
