import re
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import declarative_base, declared_attr

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CustomBase:
    # Generate __tablename__ automatically: ItemPhoto -> item_photos
    @declared_attr
    def __tablename__(cls) -> str:
        return _CAMEL_BOUNDARY.sub("_", cls.__name__).lower() + "s"

    def touch(self) -> None:
        """Bump updated_at after a field change."""
        if hasattr(self, "updated_at"):
            self.updated_at = utcnow()


Base: Any = declarative_base(cls=CustomBase)
