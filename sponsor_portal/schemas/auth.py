from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from ..core.roles import Role


class Identity(BaseModel):
    id: str
    email: str
    full_name: str
    role: Role
    is_active: bool = True
    organisation_id: str
    worker_id: str | None = None
    last_login: datetime | None = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "id": "u-1",
                "email": "hr@example.co.uk",
                "full_name": "Priya Shah",
                "role": "hr_officer",
                "is_active": True,
                "organisation_id": "org-1",
                "worker_id": None,
                "last_login": "2025-03-01T09:15:00Z",
            }
        }
    }


class LoginResponse(BaseModel):
    access_token: str = Field(..., min_length=1)
    token_type: str = "bearer"
    user: Identity
