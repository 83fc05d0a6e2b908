"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

import datetime

from pydantic import BaseModel, Field

from src.domain.models import Member, PersonalBanDate
from src.domain.ports import DateStatus, MemberRole, MemberStatus


class RegisterRequest(BaseModel):
    """Request model for member registration."""

    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    # Kept as typed; EmailValidator checks the shape
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=8, max_length=72, description="Member password (8 to 72 characters)")
    telephone: str = Field(default="", max_length=30, description="Phone number")


class RegisterResponse(BaseModel):
    """Response model for successful registration."""

    message: str
    email: str
    expires_in_seconds: int


class ConfirmResponse(BaseModel):
    """Response model for successful email confirmation."""

    message: str
    email: str


class MemberResponse(BaseModel):
    """Public view of a member. Never carries credential material."""

    email: str
    name: str
    telephone: str
    role: MemberRole
    status: MemberStatus

    @classmethod
    def of(cls, member: Member) -> "MemberResponse":
        return cls(
            email=member.email,
            name=member.name,
            telephone=member.telephone,
            role=member.role,
            status=member.status,
        )


class FollowRequest(BaseModel):
    """Request model for following another member."""

    receiver_email: str = Field(..., max_length=255)


class FollowResponse(BaseModel):
    """Response model for a created relation."""

    owner_email: str
    friend_email: str


class BanDateRequest(BaseModel):
    """Request model for recording a date exception."""

    date: datetime.date


class BanDateStatusRequest(BaseModel):
    """Request model for changing the status of a date exception."""

    # Plain string so unknown values reach the domain and fail as InvalidStatusError
    status: str = Field(..., max_length=10)


class BanDateResponse(BaseModel):
    """Response model for a date exception."""

    id: int
    date: datetime.date
    status: DateStatus
    color: str

    @classmethod
    def of(cls, ban_date: PersonalBanDate) -> "BanDateResponse":
        return cls(
            id=ban_date.id,
            date=ban_date.date,
            status=ban_date.status,
            color=ban_date.status.color,
        )


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
