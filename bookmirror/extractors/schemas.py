"""Data validation schemas for extracted records."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class PageSnapshot(BaseModel):
    """Rendered DOM captured from one page load."""

    model_config = ConfigDict(frozen=True)

    url: str
    html: str = ""
    loaded: bool = True


class CandidateRecord(BaseModel):
    """An unvalidated listing extracted from a collection page."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(min_length=1)
    price: str = Field(min_length=1)
    image_url: str | None = None
    source_id: str = Field(min_length=1)
    product_url: str | None = None


class DetailRecord(BaseModel):
    """Long-form fields extracted from a product page."""

    model_config = ConfigDict(extra="ignore")

    description: str | None = None
    isbn: str | None = None
    author: str | None = None
    publisher: str | None = None

    @property
    def empty(self) -> bool:
        return not any((self.description, self.isbn, self.author, self.publisher))
