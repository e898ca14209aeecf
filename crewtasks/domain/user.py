"""User domain models and enums."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class UserRole(StrEnum):
    """User role in the crew."""

    ADMIN = "ADMIN"
    EMPLOYEE = "EMPLOYEE"


class User(BaseModel):
    """User data transfer object."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., description="Unique user ID")
    name: str = Field(..., description="Display name of the user")
    role: UserRole = Field(default=UserRole.EMPLOYEE, description="ADMIN or EMPLOYEE")
    pin: str = Field(..., description="Shared-secret PIN, compared literally")
    avatar_url: str | None = Field(default=None, description="Avatar image reference")
    position: str | None = Field(default=None, description="Optional position label (e.g., 'Kitchen')")

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted record shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def public_view(self) -> dict[str, Any]:
        """Record without the PIN, for responses sent to clients."""
        record = self.to_record()
        record.pop("pin", None)
        return record
