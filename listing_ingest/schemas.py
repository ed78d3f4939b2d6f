"""Pydantic schemas: persisted listing validation and API responses."""

import re
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 2000
CITY_MAX_LENGTH = 100
AREA_NAME_MAX_LENGTH = 100
ADDRESS_MAX_LENGTH = 500
AMENITY_MAX_LENGTH = 50
MAX_BHK = 20

HTTP_URL = re.compile(r"^https?://.+")
PHONE = re.compile(r"^\+?[\d\s\-()]+$")
EMAIL = re.compile(r"^[\w.+-]+@[\w-]+(\.[\w-]+)*\.\w{2,}$")


class LocationSchema(BaseModel):
    city: str = Field(min_length=1, max_length=CITY_MAX_LENGTH)
    area: Optional[str] = Field(default=None, max_length=AREA_NAME_MAX_LENGTH)
    full_address: Optional[str] = Field(default=None, max_length=ADDRESS_MAX_LENGTH)


class AreaSchema(BaseModel):
    size: float = Field(ge=0)
    unit: Literal["sqft", "sqm", "acres", "sqyd"] = "sqft"


class SourceSchema(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    url: str
    scraped_at: datetime

    @field_validator("url")
    @classmethod
    def url_must_be_http(cls, v: str) -> str:
        if not HTTP_URL.match(v):
            raise ValueError("Source URL must be a valid URL")
        return v


class ContactSchema(BaseModel):
    phone: Optional[str] = None
    email: Optional[str] = None
    agent: Optional[str] = Field(default=None, max_length=100)

    @field_validator("phone")
    @classmethod
    def phone_format(cls, v: Optional[str]) -> Optional[str]:
        if v and not PHONE.match(v):
            raise ValueError("Invalid phone number format")
        return v

    @field_validator("email")
    @classmethod
    def email_format(cls, v: Optional[str]) -> Optional[str]:
        if v and not EMAIL.match(v.lower()):
            raise ValueError("Invalid email format")
        return v.lower() if v else v


class PropertyCreate(BaseModel):
    """Schema a canonical record must satisfy before it is stored."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str = Field(default="", max_length=DESCRIPTION_MAX_LENGTH)
    price: int = Field(ge=0)
    price_type: Literal["sale", "rent"] = "sale"
    location: LocationSchema
    property_type: Literal["apartment", "house", "villa", "plot", "commercial", "other"] = "other"
    bhk: Optional[int] = Field(default=None, ge=0, le=MAX_BHK)
    area: AreaSchema
    amenities: list[str] = []
    images: list[str] = []
    source: SourceSchema
    contact: ContactSchema = ContactSchema()
    status: Literal["active", "sold", "rented", "inactive", "pending"] = "active"
    ai_processed: bool = False
    confidence: float = Field(default=0.5, ge=0, le=1)
    tags: list[str] = []

    @field_validator("amenities")
    @classmethod
    def amenity_length(cls, v: list[str]) -> list[str]:
        for amenity in v:
            if len(amenity) > AMENITY_MAX_LENGTH:
                raise ValueError(f"Amenity name cannot exceed {AMENITY_MAX_LENGTH} characters")
        return v

    @field_validator("images")
    @classmethod
    def images_must_be_urls(cls, v: list[str]) -> list[str]:
        for url in v:
            if not HTTP_URL.match(url):
                raise ValueError("Image must be a valid URL")
        return v


def first_error_message(exc: Any) -> str:
    """Human-readable first message of a pydantic ValidationError."""
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "invalid value").removeprefix("Value error, ")
    return f"{field}: {message}" if field else message


# Response models
class ScrapeStatsResponse(BaseModel):
    scraped: int
    created: int
    duplicates: int
    errors: int


class BatchErrorResponse(BaseModel):
    source_or_record: str
    reason: str


class ScrapeResponse(BaseModel):
    """Response model for a scrape run."""
    success: bool
    message: str
    city: str
    stats: ScrapeStatsResponse
    properties: list[dict[str, Any]]
    errors: list[BatchErrorResponse]
    started_at: datetime
    finished_at: Optional[datetime]


class ScrapeRequest(BaseModel):
    """Request model for triggering a scrape."""
    city: str = Field(default="Mumbai", min_length=1, max_length=CITY_MAX_LENGTH)
    limit: int = Field(default=30, ge=1, le=300)


class ClearResponse(BaseModel):
    success: bool
    deleted: int
    message: str
