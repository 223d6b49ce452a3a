from pydantic import BaseModel
from typing import Any, Dict, Literal, Optional

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


class ChangeEvent(BaseModel):
    """A row-level change on the messages relation."""
    type: Literal["INSERT", "UPDATE", "DELETE"]
    record: Optional[Dict[str, Any]] = None
    old_record: Optional[Dict[str, Any]] = None

    @property
    def row(self) -> Dict[str, Any]:
        # DELETE events only carry the old row
        return self.record or self.old_record or {}


class WebSocketMessage(BaseModel):
    type: str
    payload: Any
