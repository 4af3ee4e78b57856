from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class AuthUser(BaseModel):
    """
    Represents an authenticated user from Supabase.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    role: str = "authenticated"
    app_metadata: dict = Field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        """Store admins carry role=admin in app_metadata; service_role is trusted."""
        return self.role == "service_role" or self.app_metadata.get("role") == "admin"
