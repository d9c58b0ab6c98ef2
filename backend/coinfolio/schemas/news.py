"""Pydantic schemas for news articles."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class NewsArticle(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    summary: str
    url: str
    source: str
    published_at: datetime
    image_url: str | None = None
    categories: list[str] = []
