from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class SiteCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    base_url: str = Field(min_length=1, max_length=500)

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return value


class SiteRead(BaseModel):
    id: int
    name: str
    base_url: str
    api_key: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class SiteCreated(SiteRead):
    # Returned exactly once, at creation.
    api_secret: str
