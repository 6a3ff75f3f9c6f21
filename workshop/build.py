#!/usr/bin/env python3
"""
Database build orchestrator for the workshop backend
Creates tables, inserts critical data and optionally the demo data
"""

import json
import os
from pathlib import Path

from workshop import create_app, db
from workshop.utils.logger import get_logger

logger = get_logger("workshop.build")

CRITICAL_DATA_FILE = Path(__file__).parent / 'data' / 'core' / 'build_data_critical.json'


def load_critical_data(path=CRITICAL_DATA_FILE):
    if not path.exists():
        error_msg = f"Critical data file not found: {path}"
        logger.error(error_msg)
        raise FileNotFoundError(error_msg)

    logger.info(f"Loading critical data from {path.name}...")
    with open(path, 'r') as f:
        return json.load(f)


def verify_critical_data():
    """
    Verify that critical data is present in the database

    Returns:
        bool: True if the system user, the admin user and a settings row exist
    """
    from workshop.data.core.user_info.user import User
    from workshop.data.core.setting import Setting

    if not User.query.filter_by(username='system').first():
        logger.warning("System user not found")
        return False
    if not User.query.filter_by(username='admin').first():
        logger.warning("Admin user not found")
        return False
    if Setting.current() is None:
        logger.warning("Settings row not found")
        return False

    logger.info("Critical data verification passed")
    return True


def insert_critical_data(critical_data=None):
    """
    Insert critical data that must always be present

    User passwords are never stored in the JSON file; each user names the
    environment variable holding its password.

    Raises:
        FileNotFoundError: If the critical data file is missing
        RuntimeError: If a password variable is unset or insertion fails
    """
    from workshop.data.core.user_info.user import User
    from workshop.data.core.setting import Setting

    if verify_critical_data():
        logger.info("Critical data already present, skipping insertion")
        return

    critical_data = critical_data or load_critical_data()
    essential = critical_data.get('Essential', {})
    logger.warning("Critical data missing, attempting insertion...")

    try:
        system_user_id = None
        for user_key, user_data in essential.get('Users', {}).items():
            user_data = dict(user_data)
            password_env = user_data.pop('password_env', None)
            password = os.environ.get(password_env) if password_env else None
            if not password:
                raise RuntimeError(f"{password_env} must be set to create the {user_data.get('username')} user")
            user_data['password'] = password

            user, created = User.find_or_create_from_dict(
                user_data, user_id=system_user_id, lookup_fields=['username'], commit=False)
            db.session.flush()
            if user.is_system:
                system_user_id = user.id
            if created:
                logger.info(f"Inserted essential user: {user.username}")

        if Setting.current() is None and 'Settings' in essential:
            Setting.create_from_dict(essential['Settings'], user_id=system_user_id, commit=False)
            logger.info("Inserted default settings")

        db.session.commit()
        logger.info("Successfully inserted critical data")
    except Exception as e:
        db.session.rollback()
        logger.error(f"Critical data insertion failed: {e}")
        raise

    if not verify_critical_data():
        raise RuntimeError("Critical data insertion completed but verification failed")


def build_database(enable_debug_data=True, build_only=False):
    """
    Create every table, insert critical data and, unless disabled, demo data

    Args:
        enable_debug_data (bool): Whether to insert demo data
        build_only (bool): Create tables and critical data only
    """
    app = create_app()

    with app.app_context():
        logger.info(f"Starting database build (debug data: {enable_debug_data and not build_only})")

        db.create_all()
        logger.info("All database tables created")

        # Critical data is checked regardless of flags
        insert_critical_data()

        if enable_debug_data and not build_only:
            from workshop.debug.debug_data_manager import insert_debug_data
            logger.info("Inserting debug data...")
            insert_debug_data(enabled=True)

        logger.info("Database build completed successfully")


if __name__ == '__main__':
    build_database()
