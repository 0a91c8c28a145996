"""Pydantic schemas for API request/response DTOs."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Standard error response detail."""

    detail: str = Field(description="Error message")
    error_type: str = Field(description="Error type identifier")
    redirect_to: Optional[str] = Field(
        default=None, description="Where to send the client to sign in again"
    )


# Reusable responses dict for OpenAPI documentation
AUTH_ERROR_RESPONSES = {
    401: {"model": ErrorDetail, "description": "Unauthorized - sign-in required or session revoked"},
    403: {"model": ErrorDetail, "description": "Forbidden - invalid CSRF token or insufficient privilege"},
}


class HealthCheckResponse(BaseModel):
    """Health check endpoint response."""

    status: str = Field(description="Health status ('ok' or 'error')")
    version: str = Field(description="API version string")


class LoginRequest(BaseModel):
    """Login credentials."""

    email: str = Field(..., min_length=1, max_length=255, description="Login email address")
    password: str = Field(..., min_length=1, description="Password")
    csrf_token: Optional[str] = Field(default=None, description="Anti-forgery token")


class RegisterRequest(BaseModel):
    """Account registration request."""

    email: str = Field(..., min_length=1, max_length=255, description="Login email address")
    password: str = Field(..., min_length=1, description="Password")
    display_name: str = Field(default="", max_length=100, description="Name shown in the UI")
    csrf_token: Optional[str] = Field(default=None, description="Anti-forgery token")


class SessionResponse(BaseModel):
    """The signed-in subject and its current CSRF token."""

    subject_id: int = Field(description="Signed-in subject id")
    is_privileged: bool = Field(description="Whether the subject has the privileged flag")
    csrf_token: str = Field(description="Token to send with state-changing requests")


class UserResponse(BaseModel):
    """Public account data."""

    subject_id: int
    email: str
    display_name: str
    created_at: datetime


class CsrfTokenResponse(BaseModel):
    """Current anti-forgery token for the session."""

    csrf_token: str


class LogoutResponse(BaseModel):
    """Logout acknowledgement."""

    detail: str = "Signed out"
    redirect_to: str = "/login"


class ApiKeyUpdate(BaseModel):
    """Request body for storing a provider API key."""

    api_key: str = Field(..., min_length=1, description="Provider API key")
    csrf_token: Optional[str] = Field(default=None, description="Anti-forgery token")


class ApiKeyStatus(BaseModel):
    """Whether a provider has an API key configured."""

    provider: Literal["openai", "perplexity"]
    configured: bool


class SettingItem(BaseModel):
    """A stored setting; encrypted values are masked."""

    key: str
    value: str
    is_encrypted: bool
    description: Optional[str] = None
    updated_at: datetime


class SettingsListResponse(BaseModel):
    """All stored settings."""

    items: List[SettingItem]
