"""
Generic data insertion mixin for SQLAlchemy models
Provides from_dict and to_dict methods used by the build step and the JSON routes
"""

from datetime import date, datetime
from sqlalchemy import inspect
from workshop import db
from workshop.utils.logger import get_logger

logger = get_logger("workshop.business.core.data_insertion")

AUDIT_FIELDS = ('created_at', 'updated_at', 'created_by_id', 'updated_by_id')


class DataInsertionMixin:
    """
    Mixin that provides generic data insertion capabilities for SQLAlchemy models

    This mixin adds:
    - from_dict(): Create model instance from dictionary
    - to_dict(): Convert model instance to a JSON-ready dictionary
    - create_from_dict(): Create and add model instance from dictionary
    - find_or_create_from_dict(): Idempotent insert keyed on lookup fields
    """

    # Columns never exposed by to_dict (e.g. password hashes)
    __hidden_fields__ = ()

    @classmethod
    def from_dict(cls, data_dict, user_id=None, skip_fields=None):
        """
        Create a model instance from a dictionary

        Args:
            data_dict (dict): Dictionary containing model data
            user_id (int, optional): User ID for audit fields
            skip_fields (list, optional): Fields to skip during creation

        Returns:
            Model instance (not added to the session)
        """
        skip_fields = skip_fields or []

        columns = {c.key for c in inspect(cls).columns}

        filtered_data = {}
        for key, value in data_dict.items():
            if key not in columns or key in skip_fields:
                continue
            if key == 'password' and hasattr(cls, 'set_password'):
                continue
            if key in ('created_at', 'updated_at') and value is None:
                continue
            filtered_data[key] = value

        instance = cls(**filtered_data)

        if 'password' in data_dict and hasattr(instance, 'set_password'):
            instance.set_password(data_dict['password'])

        if user_id is not None:
            if hasattr(instance, 'created_by_id') and not instance.created_by_id:
                instance.created_by_id = user_id
            if hasattr(instance, 'updated_by_id'):
                instance.updated_by_id = user_id

        return instance

    def to_dict(self, include_audit_fields=True, exclude=None):
        """
        Convert model instance to dictionary

        Args:
            include_audit_fields (bool): Whether to include audit fields
            exclude (iterable, optional): Extra column keys to leave out

        Returns:
            dict: Dictionary representation of the model
        """
        exclude = set(exclude or ()) | set(self.__hidden_fields__)
        result = {}

        for column in inspect(self.__class__).columns:
            key = column.key
            if key in exclude:
                continue
            if not include_audit_fields and key in AUDIT_FIELDS:
                continue

            value = getattr(self, key)
            if isinstance(value, (datetime, date)):
                result[key] = value.isoformat()
            else:
                result[key] = value

        return result

    @classmethod
    def create_from_dict(cls, data_dict, user_id=None, skip_fields=None, commit=True):
        """
        Create and save a model instance from dictionary

        Args:
            data_dict (dict): Dictionary containing model data
            user_id (int, optional): User ID for audit fields
            skip_fields (list, optional): Fields to skip during creation
            commit (bool): Whether to commit the transaction

        Returns:
            Model instance
        """
        instance = cls.from_dict(data_dict, user_id, skip_fields)

        try:
            db.session.add(instance)
            if commit:
                db.session.commit()
                logger.info(f"Created {cls.__name__}: {instance}")
            return instance
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error creating {cls.__name__}: {e}")
            raise

    @classmethod
    def find_or_create_from_dict(cls, data_dict, user_id=None, skip_fields=None,
                                 lookup_fields=None, commit=True):
        """
        Find existing instance or create new one from dictionary

        Args:
            data_dict (dict): Dictionary containing model data
            user_id (int, optional): User ID for audit fields
            skip_fields (list, optional): Fields to skip during creation
            lookup_fields (list, optional): Fields to use for lookup (default: unique columns)
            commit (bool): Whether to commit the transaction

        Returns:
            tuple: (instance, created)
        """
        if lookup_fields is None:
            lookup_fields = [c.key for c in inspect(cls).columns if c.unique and c.key in data_dict]

        lookup_data = {field: data_dict[field] for field in lookup_fields if field in data_dict}
        if not lookup_data:
            return cls.create_from_dict(data_dict, user_id, skip_fields, commit), True

        existing = cls.query.filter_by(**lookup_data).first()
        if existing:
            logger.debug(f"Found existing {cls.__name__}: {existing}")
            return existing, False

        return cls.create_from_dict(data_dict, user_id, skip_fields, commit), True
