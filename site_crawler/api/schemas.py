from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from site_crawler.storage.models import PageStatus, WebsiteStatus


class SubmitWebsiteIn(BaseModel):
    url: str = Field(min_length=1, max_length=2048)

    @field_validator("url")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value or " " in value:
            raise ValueError("Please provide a valid URL")
        return value


class WebsiteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    url: str
    name: Optional[str] = None
    description: Optional[str] = None
    scraped_content: Optional[str] = None
    scraped_meta: Optional[Dict[str, Any]] = None
    status: WebsiteStatus
    error: Optional[str] = None
    scraped_at: Optional[datetime] = None
    is_primary: bool
    total_pages_found: int
    total_pages_scraped: int
    created_at: datetime


class PageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    website_id: UUID
    url: str
    path: str
    title: Optional[str] = None
    description: Optional[str] = None
    scraped_content: Optional[str] = None
    scraped_meta: Optional[Dict[str, Any]] = None
    word_count: Optional[int] = None
    status: PageStatus
    error: Optional[str] = None
    scraped_at: Optional[datetime] = None
    depth: int
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[str] = None
    created_at: datetime


class PageStats(BaseModel):
    total: int
    completed: int
    pending: int
    failed: int


class CrawlStatusOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    website: WebsiteOut
    page_stats: PageStats


class OnboardingStatusOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    has_website: bool
    can_finalize: bool
    website_status: Optional[WebsiteStatus] = None
    website: Optional[WebsiteOut] = None
    page_stats: Optional[PageStats] = None
