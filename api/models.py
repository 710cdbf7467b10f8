"""
API request and response models for LocalHelp REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
listings/models.py, which own the internal domain representation. Route
handlers map between the two.

Wire format: camelCase JSON keys (passwordHash, avatarUrl, bloodGroup,
ownerName, createdAt) for compatibility with the existing web client. Python
attributes stay snake_case; _CamelModel supplies the aliases, and FastAPI
serializes response_model output by alias.

Partial updates: patch models use extra="forbid", so unknown keys (including
owner fields) are rejected. A key that is absent leaves the stored value
alone; a key that is present is written, empty string included. null is
rejected -- "clear" is spelled "".
"""

from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, create_model, field_validator, model_validator
from pydantic.alias_generators import to_camel

from auth.models import Role, User, UserStatus
from core.config import MAX_PASSWORD_BYTES
from listings.models import OwnedResource, ResourceKind

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class BloodGroupEnum(str, Enum):
    a_pos = "A+"
    a_neg = "A-"
    b_pos = "B+"
    b_neg = "B-"
    ab_pos = "AB+"
    ab_neg = "AB-"
    o_pos = "O+"
    o_neg = "O-"


_BLOOD_GROUPS = tuple(g.value for g in BloodGroupEnum)


def _check_blood_group(value: Optional[str]) -> Optional[str]:
    # "" means no group; anything else must be a known group
    if value and value not in _BLOOD_GROUPS:
        raise ValueError(f"bloodGroup must be one of {', '.join(_BLOOD_GROUPS)} or \"\"")
    return value


# ---------------------------------------------------------------------------
# Base classes
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


class _PatchModel(_CamelModel):
    """Base for partial-update bodies: unknown keys and explicit nulls are errors."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="forbid",
    )

    @model_validator(mode="after")
    def reject_nulls(self):
        nulls = [name for name in self.model_fields_set if getattr(self, name) is None]
        if nulls:
            raise ValueError(f"null is not allowed for: {', '.join(sorted(nulls))}; send \"\" to clear a field")
        return self

    def changes(self) -> dict:
        """Only the fields the client actually sent, keyed by attribute name."""
        return self.model_dump(exclude_unset=True, mode="json")


class Address(_CamelModel):
    district: str = Field(default="", max_length=100)
    upazila: str = Field(default="", max_length=100)


class AddressPatch(_PatchModel):
    district: Optional[str] = Field(default=None, max_length=100)
    upazila: Optional[str] = Field(default=None, max_length=100)


# ---------------------------------------------------------------------------
# Auth request models
# ---------------------------------------------------------------------------


class RegisterRequest(_CamelModel):
    """Request body for POST /api/register.

    The web client sends the plaintext password under "passwordHash"; it is
    hashed server side before it reaches the store. Client-supplied role,
    status and rating fields are ignored -- every registration is a plain
    active user.
    """

    name: str = Field(min_length=1, max_length=255)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    phone: str = Field(default="", max_length=30)
    password: str = Field(min_length=6, validation_alias=AliasChoices("passwordHash", "password"))
    avatar_url: str = Field(default="", max_length=2048)
    blood_group: str = Field(default="", max_length=3)
    address: Address = Field(default_factory=Address)

    @field_validator("password")
    @classmethod
    def check_password_bytes(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes in UTF-8")
        return value

    @field_validator("blood_group")
    @classmethod
    def check_blood_group(cls, value: Optional[str]) -> Optional[str]:
        return _check_blood_group(value)


class LoginRequest(_CamelModel):
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class ProfilePatch(_PatchModel):
    """Request body for PATCH /api/users/{email}. Self-service fields only."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=30)
    blood_group: Optional[str] = Field(default=None, max_length=3)
    avatar_url: Optional[str] = Field(default=None, max_length=2048)
    address: Optional[AddressPatch] = None

    @field_validator("blood_group")
    @classmethod
    def check_blood_group(cls, value: Optional[str]) -> Optional[str]:
        return _check_blood_group(value)


class AdminUserPatch(_PatchModel):
    """Request body for PATCH /api/users/{id}. Admin-only fields."""

    role: Optional[Role] = None
    status: Optional[UserStatus] = None


# ---------------------------------------------------------------------------
# Auth response models
# ---------------------------------------------------------------------------


class UserResponse(_CamelModel):
    """Public view of a user. Never includes the password hash."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: int
    email: str
    name: str
    phone: str
    avatar: str
    blood_group: str
    role: Role
    status: UserStatus
    address: Address
    rating_avg: float
    rating_count: int
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            phone=user.phone,
            avatar=user.avatar,
            blood_group=user.blood_group,
            role=user.role,
            status=user.status,
            address=Address(district=user.district, upazila=user.upazila),
            rating_avg=user.rating_avg,
            rating_count=user.rating_count,
            created_at=user.created_at or "",
        )


class RegisterResponse(_CamelModel):
    message: str
    user_id: int


class UserEnvelope(_CamelModel):
    """{"user": {...}} with an optional message, used by /api/me, /api/login, profile updates."""

    message: Optional[str] = None
    user: UserResponse


class IsAdminResponse(_CamelModel):
    is_admin: bool


class MessageResponse(_CamelModel):
    message: str


# ---------------------------------------------------------------------------
# Owned resources
# ---------------------------------------------------------------------------


# The web client names the category field after the kind it is posting.
CATEGORY_KEYS: dict[ResourceKind, str] = {
    ResourceKind.service: "serviceType",
    ResourceKind.request: "requestType",
    ResourceKind.rental: "rentType",
}


class ResourceCreate(_CamelModel):
    """Request body for POST /api/services, /api/requests, /api/rents.

    Accepts "category" only; resource_models() derives the per-kind body that
    also takes that kind's own key (serviceType, requestType or rentType).
    district, upazila and contact fall back to the owner's profile when omitted.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="forbid",
    )

    category: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=5000)
    title: str = Field(default="", max_length=255)
    price: Optional[float] = Field(default=None, ge=0)
    availability: str = Field(default="", max_length=255)
    district: str = Field(default="", max_length=100)
    upazila: str = Field(default="", max_length=100)
    contact: str = Field(default="", max_length=100)


class ResourcePatch(_PatchModel):
    """Request body for PATCH /api/{kind}/{id}. Owner fields are not accepted."""

    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1, max_length=5000)
    title: Optional[str] = Field(default=None, max_length=255)
    price: Optional[float] = Field(default=None, ge=0)
    availability: Optional[str] = Field(default=None, max_length=255)
    district: Optional[str] = Field(default=None, max_length=100)
    upazila: Optional[str] = Field(default=None, max_length=100)
    contact: Optional[str] = Field(default=None, max_length=100)
    status: Optional[str] = Field(default=None, min_length=1, max_length=30)


def resource_models(kind: ResourceKind) -> tuple[type[ResourceCreate], type[ResourcePatch]]:
    """Return the create and patch bodies for kind.

    Each accepts "category" or the kind's own key, never another kind's key.
    """
    aliases = AliasChoices("category", CATEGORY_KEYS[kind])
    label = kind.value.capitalize()
    create = create_model(
        f"{label}Create",
        __base__=ResourceCreate,
        category=(str, Field(min_length=1, max_length=100, validation_alias=aliases)),
    )
    patch = create_model(
        f"{label}Patch",
        __base__=ResourcePatch,
        category=(Optional[str], Field(default=None, min_length=1, max_length=100, validation_alias=aliases)),
    )
    return create, patch


class ResourceResponse(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: int
    kind: str
    owner_id: int
    owner_name: str
    owner_avatar: str
    category: str
    title: str
    description: str
    price: Optional[float]
    availability: str
    district: str
    upazila: str
    contact: str
    status: str
    created_at: str
    updated_at: Optional[str] = None

    @classmethod
    def from_resource(cls, resource: OwnedResource) -> "ResourceResponse":
        return cls(
            id=resource.id,
            kind=resource.kind.value,
            owner_id=resource.owner_id,
            owner_name=resource.owner_name,
            owner_avatar=resource.owner_avatar,
            category=resource.category,
            title=resource.title,
            description=resource.description,
            price=resource.price,
            availability=resource.availability,
            district=resource.district,
            upazila=resource.upazila,
            contact=resource.contact,
            status=resource.status,
            created_at=resource.created_at,
            updated_at=resource.updated_at,
        )


class ResourceCreatedResponse(_CamelModel):
    message: str
    id: int
    resource: ResourceResponse


class ResourceUpdatedResponse(_CamelModel):
    message: str
    resource: ResourceResponse


class ResourceDeletedResponse(_CamelModel):
    message: str
    deleted_id: int


# ---------------------------------------------------------------------------
# Geocode
# ---------------------------------------------------------------------------


class UploadResponse(_CamelModel):
    message: str
    inserted_count: int


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
