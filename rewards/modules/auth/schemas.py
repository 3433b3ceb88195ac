from pydantic import BaseModel, EmailStr, Field
from typing import Optional


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    email: str


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    full_name: Optional[str] = Field(default=None, max_length=100)
    phone_number: Optional[str] = Field(default=None, pattern=r"^\+?[1-9]\d{1,14}$")
    referral_code: Optional[str] = None


class RegisterResponse(BaseModel):
    user_id: str
    auth_user_id: str
    email: str
    username: str
    referral_code: str
    tier_code: str
    message: str


class VerifiedUser(BaseModel):
    id: str
    auth_user_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    username: str
    phone_number: Optional[str] = None
    referral_code: Optional[str] = None
    vip_level: str
    position_title: Optional[str] = None
