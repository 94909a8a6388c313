from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional


class FileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    url: str
    size: int
    type: str
    leave_id: Optional[int] = None
    uploaded_by: Optional[int] = None
    uploaded_at: Optional[datetime] = None
