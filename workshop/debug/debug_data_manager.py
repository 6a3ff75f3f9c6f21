#!/usr/bin/env python3
"""
Debug Data Manager
Inserts the demo customer, products and resource pools from data/workshop.json

Records are keyed on their unique business number (phone, sku, employee id,
tool/machine/station number) so running the build twice inserts nothing new.
"""

from pathlib import Path
import json
from workshop import db
from workshop.utils.logger import get_logger

logger = get_logger("workshop.debug_data_manager")

DEBUG_DATA_FILE = Path(__file__).parent / 'data' / 'workshop.json'


def _sections():
    from workshop.data.core.customer import Customer
    from workshop.data.inventory.product import Product
    from workshop.data.resources.technician import Technician
    from workshop.data.resources.tool import Tool
    from workshop.data.resources.machine import Machine
    from workshop.data.resources.workstation import WorkStation

    # Insertion order; (json section, model, lookup field)
    return [
        ('Customers', Customer, 'phone'),
        ('Products', Product, 'sku'),
        ('Technicians', Technician, 'employee_id'),
        ('Tools', Tool, 'tool_number'),
        ('Machines', Machine, 'machine_number'),
        ('WorkStations', WorkStation, 'station_number'),
    ]


def _load_debug_data_file(path=DEBUG_DATA_FILE):
    if not path.exists():
        return None
    try:
        with open(path, 'r') as f:
            data = json.load(f)
        logger.debug(f"Loaded debug data file: {path}")
        return data
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in {path}: {e}")
        raise


def insert_debug_data(enabled=True, debug_data=None):
    """
    Insert demo data

    Args:
        enabled (bool): Whether to insert debug data (default: True)
        debug_data (dict, optional): Data to insert instead of the JSON file

    Returns:
        dict: Number of newly inserted records per section

    Raises:
        Exception: If any insertion fails (fail-fast, nothing is committed)
    """
    if not enabled:
        logger.info("Debug data insertion is disabled")
        return {}

    from workshop.data.core.user_info.user import User
    system_user = User.query.filter_by(username='system').first()
    if not system_user:
        logger.error("System user not found - cannot insert debug data without system user")
        raise RuntimeError("System user not found - critical data must be inserted first")

    debug_data = debug_data if debug_data is not None else _load_debug_data_file()
    if not debug_data:
        logger.info("No debug data file found, skipping")
        return {}

    summary = {}
    try:
        for section, model, lookup_field in _sections():
            inserted = 0
            for record in debug_data.get(section, []):
                _, created = model.find_or_create_from_dict(
                    record, user_id=system_user.id, lookup_fields=[lookup_field], commit=False)
                inserted += int(created)
            db.session.flush()
            summary[section] = inserted
            logger.info(f"Debug data {section}: {inserted} inserted")
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Failed to insert debug data: {e}")
        raise

    logger.info("Debug data insertion completed successfully")
    return summary
