# backend/schemas/shop_profile.py
from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl, TypeAdapter, field_validator
from typing import Optional

_http_url = TypeAdapter(HttpUrl)


# Public shop details; defaults are filled in when no profile row exists
class ShopProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    shop_name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    about_us: Optional[str] = None
    facebook_url: Optional[str] = None
    instagram_url: Optional[str] = None
    twitter_url: Optional[str] = None
    github_url: Optional[str] = None
    logo_url: str
    is_default: bool = False


# Admin form for the shop profile
class ShopProfileUpdate(BaseModel):
    shop_name: str = Field(min_length=2)
    address: str = Field(min_length=5)
    phone: str = Field(min_length=5)
    email: EmailStr
    about_us: str = Field(min_length=10)
    facebook_url: Optional[str] = ""
    instagram_url: Optional[str] = ""
    twitter_url: Optional[str] = ""
    github_url: Optional[str] = ""
    logo_url: Optional[str] = None

    @field_validator("facebook_url", "instagram_url", "twitter_url", "github_url", "logo_url")
    @classmethod
    def _url_or_empty(cls, value: Optional[str]) -> Optional[str]:
        # Empty string clears a link
        if not value:
            return value
        _http_url.validate_python(value)
        return value
