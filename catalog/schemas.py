from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, EmailStr, Field, PositiveInt, field_validator
from pydantic.config import ConfigDict

MAX_PRICE = Decimal("99999999.99")

# Optional text columns where an empty string means "no value"
OPTIONAL_TEXT_FIELDS = (
    "main_image_url",
    "feature_1",
    "feature_2",
    "feature_3",
    "feature_4",
    "feature_5",
    "requirements",
    "version",
    "file_size",
    "demo_url",
    "documentation_url",
    "support_email",
    "tags",
)
URL_FIELDS = ("main_image_url", "demo_url", "documentation_url")


def check_uri(value: str) -> str:
    """Accept absolute http(s)/ftp URLs and inline data: URIs."""
    parsed = urlparse(value)
    if parsed.scheme == "data" and parsed.path:
        return value
    if parsed.scheme in ("http", "https", "ftp") and parsed.netloc:
        return value
    raise ValueError("must be a valid uri")


class _ProductPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    @field_validator(*OPTIONAL_TEXT_FIELDS, mode="before", check_fields=False)
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator(*URL_FIELDS, check_fields=False)
    @classmethod
    def valid_uri(cls, v: Optional[str]):
        return check_uri(v) if v is not None else v

    @field_validator("gallery_images", check_fields=False)
    @classmethod
    def valid_gallery(cls, v: Optional[List[str]]):
        if v is None:
            return v
        return [check_uri(url) for url in v]


class ProductCreate(_ProductPayload):
    name: str = Field(..., min_length=1, max_length=255)
    license: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    price: Decimal = Field(..., ge=0, le=MAX_PRICE)
    category: str = Field(..., min_length=1, max_length=255)
    main_image_url: Optional[str] = None
    gallery_images: Optional[List[str]] = None
    feature_1: Optional[str] = Field(default=None, max_length=255)
    feature_2: Optional[str] = Field(default=None, max_length=255)
    feature_3: Optional[str] = Field(default=None, max_length=255)
    feature_4: Optional[str] = Field(default=None, max_length=255)
    feature_5: Optional[str] = Field(default=None, max_length=255)
    requirements: Optional[str] = None
    version: Optional[str] = Field(default=None, max_length=50)
    file_size: Optional[str] = Field(default=None, max_length=50)
    is_featured: bool = False
    demo_url: Optional[str] = Field(default=None, max_length=500)
    documentation_url: Optional[str] = Field(default=None, max_length=500)
    support_email: Optional[EmailStr] = None
    tags: Optional[str] = Field(default=None, max_length=500)


class ProductUpdate(_ProductPayload):
    """Partial update; required columns may be omitted but never nulled."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    license: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, min_length=1)
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    price: Optional[Decimal] = Field(default=None, ge=0, le=MAX_PRICE)
    category: Optional[str] = Field(default=None, min_length=1, max_length=255)
    main_image_url: Optional[str] = None
    gallery_images: Optional[List[str]] = None
    feature_1: Optional[str] = Field(default=None, max_length=255)
    feature_2: Optional[str] = Field(default=None, max_length=255)
    feature_3: Optional[str] = Field(default=None, max_length=255)
    feature_4: Optional[str] = Field(default=None, max_length=255)
    feature_5: Optional[str] = Field(default=None, max_length=255)
    requirements: Optional[str] = None
    version: Optional[str] = Field(default=None, max_length=50)
    file_size: Optional[str] = Field(default=None, max_length=50)
    is_featured: Optional[bool] = None
    demo_url: Optional[str] = Field(default=None, max_length=500)
    documentation_url: Optional[str] = Field(default=None, max_length=500)
    support_email: Optional[EmailStr] = None
    tags: Optional[str] = Field(default=None, max_length=500)

    @field_validator("name", "license", "description", "rating", "price", "category", "is_featured", mode="before")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v


class ProductRead(BaseModel):
    id: int
    name: str
    license: str
    description: Optional[str] = None
    rating: Optional[int] = None
    price: float
    category: str
    main_image_url: Optional[str] = None
    gallery_images: List[str] = []
    feature_1: Optional[str] = None
    feature_2: Optional[str] = None
    feature_3: Optional[str] = None
    feature_4: Optional[str] = None
    feature_5: Optional[str] = None
    requirements: Optional[str] = None
    version: Optional[str] = None
    file_size: Optional[str] = None
    download_count: int = 0
    is_featured: bool = False
    demo_url: Optional[str] = None
    documentation_url: Optional[str] = None
    support_email: Optional[str] = None
    tags: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("gallery_images", mode="before")
    @classmethod
    def gallery_never_null(cls, v):
        return v or []


class RegisterRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(..., min_length=6)
    is_admin: bool = False

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class UserRead(BaseModel):
    id: int
    email: str
    is_admin: bool = False
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    user: UserRead
    message: str


class CurrentUser(BaseModel):
    user: UserRead


class Message(BaseModel):
    message: str


class CartAdd(BaseModel):
    model_config = ConfigDict(extra="forbid")

    product_id: PositiveInt
    quantity: int = Field(default=1, ge=1)


class CartUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    quantity: int = Field(..., ge=1)


class CartProduct(BaseModel):
    id: int
    name: str
    price: float
    main_image_url: Optional[str] = None
    license: str
    category: str

    model_config = ConfigDict(from_attributes=True)


class CartItemRead(BaseModel):
    id: int
    user_id: int
    product_id: int
    quantity: int
    created_at: datetime
    updated_at: datetime
    product: CartProduct

    model_config = ConfigDict(from_attributes=True)


class CartAddResult(BaseModel):
    message: str
    cart_item_id: int
    quantity: int


class CartItemResult(BaseModel):
    message: str
    quantity: int


class CartSummary(BaseModel):
    total_items: int = 0
    total_quantity: int = 0
    total_price: float = 0.0


class UserStats(BaseModel):
    total: int
    admins: int
    regular: int
    recent: int


class ProductStats(BaseModel):
    total: int
    featured: int
    avg_rating: float
    recent: int
    free: int
    paid: int
    license_types: int


class AdminStats(BaseModel):
    users: UserStats
    products: ProductStats


class CategoryRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
