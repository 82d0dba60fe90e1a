from typing import List, Optional

from pydantic import BaseModel

from ..core.errors import FieldError


class ErrorResponse(BaseModel):
    detail: str
    errors: Optional[List[FieldError]] = None
