"""
API request and response models for the KIN REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
content/models.py, which own the internal domain representation. Route
handlers map between the two.

Validation failures raised by these models are translated to 400 by the
RequestValidationError handler in api/main.py.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

CODE_PATTERN = r"^\d{4,8}$"
MOBILE_PATTERN = r"^\+?[0-9][0-9 -]{5,19}$"

_Password = Field(min_length=6, max_length=64)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class GenderEnum(str, Enum):
    male = "male"
    female = "female"


class RoleEnum(str, Enum):
    user = "user"
    admin = "admin"
    superAdmin = "superAdmin"


class BloodGroupEnum(str, Enum):
    a_pos = "A+"
    a_neg = "A-"
    b_pos = "B+"
    b_neg = "B-"
    ab_pos = "AB+"
    ab_neg = "AB-"
    o_pos = "O+"
    o_neg = "O-"


# ---------------------------------------------------------------------------
# Nested profile documents
# ---------------------------------------------------------------------------


class IdentityIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    department: Optional[str] = Field(default=None, max_length=100)
    session: Optional[str] = Field(default=None, max_length=20)
    profession: Optional[str] = Field(default=None, max_length=100)
    organization: Optional[str] = Field(default=None, max_length=150)


class SocialMediaIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    fb: Optional[str] = Field(default=None, max_length=255)
    instagram: Optional[str] = Field(default=None, max_length=255)
    linkedin: Optional[str] = Field(default=None, max_length=255)


class ProfileFields(BaseModel):
    """Profile fields shared by registration, admin creation, and profile edits."""

    model_config = ConfigDict(str_strip_whitespace=True)

    mobile: Optional[str] = Field(default=None, pattern=MOBILE_PATTERN)
    blood_group: Optional[BloodGroupEnum] = None
    age: Optional[int] = Field(default=None, ge=1, le=120)
    location: Optional[str] = Field(default=None, max_length=255)
    feedback: Optional[str] = Field(default=None, max_length=2000)
    identity: Optional[IdentityIn] = None
    social_media: Optional[SocialMediaIn] = None


# ---------------------------------------------------------------------------
# Auth request models
# ---------------------------------------------------------------------------


class RegisterRequest(ProfileFields):
    """Request body for POST /api/v1/auth/register and POST /api/v1/users."""

    name: str = Field(min_length=3, max_length=100)
    email: EmailStr
    password: str = _Password
    gender: GenderEnum


class AdminUserCreate(RegisterRequest):
    """Request body for POST /api/v1/users -- staff create a pre-verified account."""

    role: RoleEnum = RoleEnum.user


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login and /dashboard-login."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    password: str = Field(min_length=1, max_length=64)


class EmailRequest(BaseModel):
    """Request body carrying just an email (resend code, find account, forgot password)."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr


class ActivateRequest(BaseModel):
    """Request body for POST /api/v1/auth/activate."""

    model_config = ConfigDict(str_strip_whitespace=True)

    code: str = Field(pattern=CODE_PATTERN)


class PasswordResetByCodeRequest(BaseModel):
    """Request body for POST /api/v1/auth/password-reset and /users/reset-password."""

    model_config = ConfigDict(str_strip_whitespace=True)

    code: str = Field(pattern=CODE_PATTERN)
    password: str = _Password


class PasswordRequest(BaseModel):
    """Request body for the reset-by-link and password-update endpoints."""

    password: str = _Password


# ---------------------------------------------------------------------------
# Account management request models
# ---------------------------------------------------------------------------


class ProfileUpdate(ProfileFields):
    """Request body for PATCH /api/v1/users/{id}.

    Extra keys are allowed through so the route can hand them to
    auth.policy.ensure_can_edit_profile(), which rejects protected fields with
    a 403 rather than a generic validation error.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="allow")

    name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    gender: Optional[GenderEnum] = None

    @field_validator("name", "gender")
    @classmethod
    def reject_null(cls, value):
        """Both may be omitted but never cleared."""
        if value is None:
            raise ValueError("may not be null")
        return value


class RoleUpdate(BaseModel):
    role: RoleEnum


class CredentialUpdate(BaseModel):
    """Request body for PATCH /api/v1/users/credential-update/{id} (superAdmin only)."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=6, max_length=64)
    role: Optional[RoleEnum] = None
    is_verified: Optional[bool] = None
    is_banned: Optional[bool] = None
    approved: Optional[bool] = None
    trash: Optional[bool] = None


class BulkDeleteRequest(BaseModel):
    """Request body for POST /api/v1/users/bulk-delete."""

    ids: list[int] = Field(min_length=1, max_length=100)

    @field_validator("ids")
    @classmethod
    def dedupe_ids(cls, values: list[int]) -> list[int]:
        """Drop duplicates while preserving order."""
        seen: set[int] = set()
        return [v for v in values if not (v in seen or seen.add(v))]


# ---------------------------------------------------------------------------
# Content request models (JSON bodies; image uploads use multipart forms)
# ---------------------------------------------------------------------------


class CommitteeCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    year: int = Field(ge=1900, le=2100)


class CommitteeUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    year: Optional[int] = Field(default=None, ge=1900, le=2100)


class MemberAdd(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: int
    designation: Optional[str] = Field(default=None, max_length=255)
    index: Optional[int] = Field(default=None, ge=0)


class MemberUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    designation: Optional[str] = Field(default=None, max_length=255)
    index: Optional[int] = Field(default=None, ge=0)


class SubscriberCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    name: Optional[str] = Field(default=None, max_length=255)


class SubscriberUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    email: Optional[EmailStr] = None
    name: Optional[str] = Field(default=None, max_length=255)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    status: int
    code: str
    message: str


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
