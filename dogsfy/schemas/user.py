"""
Dogsfy Backend — Pydantic Schemas
===================================

What:  Pydantic models exchanged between the account service, the core
       components and the application shell.
How:   Input models (UserCreate, UserUpdate, PageRequest) describe what the
       caller supplies; output models never contain a password field, so a
       User row can be converted with `model_validate(row)` without leaking
       the credential.
"""

import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Input Models
# ══════════════════════════════════════════════════════════════════════════


class UserCreate(BaseModel):
    """
    Registration data, already validated by the inbound layer.

    `password` must already be hashed; it is stored as-is.
    """
    username: str = Field(min_length=1, max_length=50)
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, description="Opaque credential hash")
    lat: float
    lng: float
    language: str = Field(default="en", max_length=10)


class UserUpdate(BaseModel):
    """Partial profile update. Fields left as None are not touched."""
    username: Optional[str] = Field(default=None, min_length=1, max_length=50)
    password: Optional[str] = Field(default=None, min_length=1, description="Opaque credential hash")
    lat: Optional[float] = None
    lng: Optional[float] = None
    language: Optional[str] = Field(default=None, max_length=10)

    def changes(self) -> Dict[str, Any]:
        """Only the fields the caller actually supplied."""
        return self.model_dump(exclude_none=True)


class PageRequest(BaseModel):
    """1-based page of `limit` items."""
    page: int = Field(ge=1)
    limit: int = Field(ge=1)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def total_pages(self, total: int) -> int:
        return math.ceil(total / self.limit)


# ══════════════════════════════════════════════════════════════════════════
# Core Output Models
# ══════════════════════════════════════════════════════════════════════════


class UserAccount(BaseModel):
    """A user as returned to callers; the password column is never included."""
    id: str
    username: str
    email: str
    lat: float
    lng: float
    language: str
    hemisphere: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class FriendProfile(BaseModel):
    """Public fields of a friend, hydrated from the friend's own partition."""
    id: str
    username: str
    email: str
    lat: float
    lng: float

    model_config = {"from_attributes": True}


class FriendshipEdge(BaseModel):
    """One stored edge; `user_id` is whoever created it."""
    user_id: str
    friend_id: str

    model_config = {"from_attributes": True}


class FriendPage(BaseModel):
    """
    A (possibly paginated) friend listing.

    total_pages / current_page are only set when the listing was paginated.
    """
    friends: List[FriendProfile] = Field(default_factory=list)
    total: int = 0
    total_pages: Optional[int] = None
    current_page: Optional[int] = None


# ══════════════════════════════════════════════════════════════════════════
# Use-Case Responses
# ══════════════════════════════════════════════════════════════════════════


class MessageResponse(BaseModel):
    status: str = "success"
    message: str


class UserResponse(BaseModel):
    status: str = "success"
    data: UserAccount


class UserListResponse(BaseModel):
    status: str = "success"
    data: List[UserAccount]
    total: int


class FriendListResponse(BaseModel):
    status: str = "success"
    data: List[FriendProfile]
    total: int
    total_pages: Optional[int] = None
    current_page: Optional[int] = None


# ══════════════════════════════════════════════════════════════════════════
# Application Shell
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error body.

    Example:
        {
            "error": "already_exists",
            "message": "The username already exists",
            "details": {"resource": "user", "field": "username"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Overall status plus per-partition connectivity."""
    status: str = Field(description="healthy, degraded or unhealthy")
    version: str
    partitions: Dict[str, str] = Field(description="Partition name → connected/disconnected")
    uptime_seconds: float
