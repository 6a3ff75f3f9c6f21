"""
Routes package for the workshop backend
Organized in a tiered structure mirroring the model organization
"""

from workshop.utils.logger import get_logger

logger = get_logger("workshop.routes")


def init_app(app):
    """Initialize all route blueprints with the Flask app"""
    logger.debug("Initializing route blueprints")

    from workshop.presentation.routes.workshop.main import jobs_bp
    app.register_blueprint(jobs_bp)

    logger.info("Registered workshop job routes")
