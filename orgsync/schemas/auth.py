"""
Authentication Pydantic schemas.

This module provides:
- LoginRequest: payload for auth.login
- LoginResponse: issued credential and the authenticated admin
"""

from pydantic import EmailStr, Field

from orgsync.schemas.common import CamelModel, CamelResponse
from orgsync.schemas.user import UserResponse


class LoginRequest(CamelModel):
    """
    Payload for auth.login.

    Attributes:
        email: Admin email address
        password: Plain text password
    """

    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class LoginResponse(CamelResponse):
    """
    Result of auth.login.

    Attributes:
        token: Signed access credential to send with every later message
        token_type: Always "bearer"
        expires_in: Credential lifetime in seconds
        user: The authenticated admin
    """

    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse
