"""
User model for SubsBase
"""
from pydantic import BaseModel, EmailStr
from typing import Optional

class AuthUser(BaseModel):
    id: str
    email: Optional[str] = None

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class RegistrationPendingResponse(BaseModel):
    message: str
    user_id: str
    email_confirmation_required: bool = True

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: AuthUser
