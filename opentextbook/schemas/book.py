from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class GenreRead(BaseModel):
    id: int
    label: str
    model_config = ConfigDict(from_attributes=True)


class BookRead(BaseModel):
    id: int
    title: str
    description: str
    genre_id: int
    author_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class PageRead(BaseModel):
    id: int
    book_id: int
    chapter_name: str
    page_number: int
    body: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class AccessRequestRead(BaseModel):
    id: int
    book_id: int
    requester_id: int
    message: str
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class BookDetail(BaseModel):
    """View model of a single book: the book, its pages in order, genre and author name."""

    book: BookRead
    pages: List[PageRead] = []
    genre: Optional[GenreRead] = None
    author: str
