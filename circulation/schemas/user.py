from pydantic import BaseModel
from typing import Optional
from circulation.core.models import Role, UserStatus

class User(BaseModel):
    user_id: int
    username: str
    full_name: Optional[str] = None
    role: Role
    status: UserStatus

    class Config:
        from_attributes = True
