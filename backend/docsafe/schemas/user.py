from pydantic import BaseModel, EmailStr, Field
from typing import List, Literal, Optional

Role = Literal["admin", "empleado"]

class ProviderUser(BaseModel):
    """Account as reported by the identity provider."""
    id: str
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: str = ""
    username: Optional[str] = None
    role: str = "empleado"
    createdAt: Optional[int] = None
    lastSignInAt: Optional[int] = None
    imageUrl: Optional[str] = None

class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    username: Optional[str] = None
    role: Role = "empleado"

class UserUpdate(BaseModel):
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[Role] = None
    password: Optional[str] = Field(None, min_length=8)

class UserPagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int

class UserListResponse(BaseModel):
    success: bool = True
    users: List[ProviderUser]
    pagination: UserPagination

class UserResponse(BaseModel):
    success: bool = True
    user: ProviderUser
