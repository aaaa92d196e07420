from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    COACH = "COACH"
    CLIENT = "CLIENT"
    GUEST = "GUEST"


class User(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    role: UserRole = UserRole.GUEST
    coach_id: Optional[str] = None
    is_active: bool = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
