from pydantic import BaseModel, Field, ConfigDict, HttpUrl, TypeAdapter, ValidationError, field_validator, model_validator
from typing import Optional, List
from datetime import datetime

HEX_COLOR_PATTERN = r"^#(?:[0-9a-fA-F]{3}){1,2}$"

TRACKED_KINDS = ("url", "dynamic")

_redirect_target = TypeAdapter(HttpUrl)


def validate_redirect_target(destination: str) -> str:
    """Reject anything a browser should not be redirected to (only http and https pass)."""
    try:
        _redirect_target.validate_python(destination.strip())
    except ValidationError:
        raise ValueError("destination must be an http or https URL") from None
    return destination


class StyleConfig(BaseModel):
    """
    Renderer style options, validated here and then stored as an opaque blob.

    Only the keys the renderer understands are accepted. Nothing in the
    resolution or analytics path reads these values.
    """
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    bg_color: Optional[str] = Field(None, alias="bgColor", pattern=HEX_COLOR_PATTERN)
    logo: Optional[str] = Field(None, description="Base64 image, optionally a data URI")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class LinkCreate(BaseModel):
    kind: str = Field("url", description='"url" links are tracked; anything else is static')
    destination: str = Field(..., min_length=1, max_length=4096)
    name: Optional[str] = Field(None, max_length=255)
    project_id: Optional[str] = None
    style: Optional[StyleConfig] = None

    @field_validator("kind")
    @classmethod
    def validate_kind(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("kind must not be empty")
        return v

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("destination must not be blank")
        return v

    @model_validator(mode="after")
    def validate_tracked_destination(self) -> "LinkCreate":
        if self.kind in TRACKED_KINDS:
            validate_redirect_target(self.destination)
        return self


class LinkResponse(BaseModel):
    """
    Serialized link.

    `content` is the string a renderer should encode: the trackable
    {base_url}/r/{short_code} for dynamic links, the raw destination otherwise.
    """
    id: str
    owner_id: str
    project_id: Optional[str] = None
    name: str
    kind: str
    short_code: str
    destination: str
    style_config: Optional[dict] = None
    active: bool
    content: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class LinkList(BaseModel):
    total: int
    links: List[LinkResponse]
