"""
Base entity classes.
"""

from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Timezone-aware current time. Records may be read by other processes."""
    return datetime.now(timezone.utc)


class BaseEntity(BaseModel):
    """
    Base for all persistent entities.

    Field names are snake_case in Python and camelCase on the wire;
    either spelling is accepted when loading.
    """
    model_config = ConfigDict(
        validate_assignment=True,
        extra="ignore",  # Ignore unknown fields from older records
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_api(self) -> dict:
        """Export for API responses."""
        return self.model_dump(mode="json", by_alias=True)

    def to_store(self) -> dict:
        """Export for persistence."""
        return self.model_dump(mode="json")
