from pydantic import BaseModel, ConfigDict
from typing import Optional


class CurrentUser(BaseModel):
    """The authenticated caller, passed explicitly into every service call."""
    id: int
    email: str
    name: Optional[str] = None
    role: str
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True)
