from typing import Dict, Optional
from uuid import UUID

from pydantic import BaseModel


class CurrentUser(BaseModel):
    """Lightweight representation of the authenticated user for RBAC checks.
    Identity is managed by the host application; everything here comes from the access token.
    """

    id: UUID
    role: str
    permissions: Dict[str, Dict[str, bool]]
    email: Optional[str] = None
