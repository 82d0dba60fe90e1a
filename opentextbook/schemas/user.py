from pydantic import BaseModel, ConfigDict
from datetime import date, datetime
from typing import Optional


class UserRead(BaseModel):
    id: int
    user_name: str
    email: str
    first_name: str
    last_name: str
    birthday: date
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)
