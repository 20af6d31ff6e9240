from pydantic import BaseModel, Field
from typing import Optional


class AuthUser(BaseModel):
    id: str
    email: Optional[str] = None


class AuthSession(BaseModel):
    """A validated access token and the user it belongs to"""
    access_token: str
    user: AuthUser


class Credentials(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)


class TokenResponse(BaseModel):
    """Result of sign-in/sign-up.

    ``access_token`` is None when the provider wants the email confirmed
    before issuing a session.
    """
    access_token: Optional[str] = None
    token_type: str = "bearer"
    user: AuthUser


class AuthInfo(BaseModel):
    message: str
    provider: str
    signin_url: str
    signup_url: str
