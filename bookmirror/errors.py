"""Custom exception types for bookmirror."""

from __future__ import annotations

from typing import Optional


class CatalogError(Exception):
    """Base class for catalog failures carrying lookup context."""

    default_message = "Catalog operation failed."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        url: Optional[str] = None,
        category: Optional[str] = None,
        source_id: Optional[str] = None,
    ) -> None:
        self.message = message or self.default_message
        self.url = url
        self.category = category
        self.source_id = source_id
        super().__init__(self.message)

    def __str__(self) -> str:
        context_parts: list[str] = []
        if self.url:
            context_parts.append(f"url={self.url}")
        if self.category:
            context_parts.append(f"category={self.category}")
        if self.source_id:
            context_parts.append(f"source_id={self.source_id}")
        context = ", ".join(context_parts)
        return f"{self.message} ({context})" if context else self.message


class NotFoundError(CatalogError):
    """Raised when a requested product or category has no stored record."""

    default_message = "Record not found."


class PageLoadError(CatalogError):
    """Raised when a page fails to load or render correctly."""

    default_message = "Failed to load page."
