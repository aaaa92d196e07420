from typing import Any, Optional
from pydantic import BaseModel


class ApiResponse(BaseModel):
    """The backend's {success, message, data, error} envelope."""

    success: bool = False
    message: Optional[str] = ""
    data: Any = None
    error: Any = None
