from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr
from college_erp.models.user import UserRole


# ---------------------------------------------------------
# BASE
# ---------------------------------------------------------
class UserBase(BaseModel):
    name: str
    email: EmailStr


# ---------------------------------------------------------
# CREATE USER (Admin creates any user)
# ---------------------------------------------------------
class UserCreate(UserBase):
    password: str
    role: UserRole
    department: Optional[str] = None

    class Config:
        json_schema_extra = {
            "examples": [
                {
                    "name": "Office Clerk",
                    "email": "clerk@example.com",
                    "password": "password123",
                    "role": "clerk",
                    "department": "administration"
                }
            ]
        }


# ---------------------------------------------------------
# READ USER (response)
# ---------------------------------------------------------
class UserRead(UserBase):
    id: str
    role: UserRole
    department: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
