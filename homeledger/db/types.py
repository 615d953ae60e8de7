import uuid
from decimal import Decimal

from sqlalchemy import String, TypeDecorator


# UUID stored as its canonical 36-char string so SQLite files stay readable
class GUID(TypeDecorator):
    """Platform-independent UUID type."""
    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if not isinstance(value, uuid.UUID):
            value = uuid.UUID(str(value))
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(value)


class ExactDecimal(TypeDecorator):
    """Decimal persisted as text.

    SQLite has no fixed-point type and Numeric round-trips through float, so
    monetary values are stored as their exact string form instead.
    """
    impl = String(64)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if isinstance(value, float):
            value = str(value)
        return str(Decimal(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        return Decimal(value)
