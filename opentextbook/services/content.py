"""Books, pages, genres and access requests.

Every lookup that can miss raises ``NotFoundError``. Uniqueness rules are
checked before writing so the caller gets a friendly message, and the unique
constraints in the schema turn any race that slips past the check into the
same ``DuplicateError``.
"""
from contextlib import contextmanager
from typing import Iterator, List, Optional
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import DuplicateError, NotFoundError, StorageError, ValidationError
from ..core.validation import is_blank
from ..models import BOOK_DESCRIPTION_MAX_LENGTH, AccessRequest, Book, Genre, Page, User

logger = logging.getLogger(__name__)

GENRE_EXISTS = "Genre already exist, add a new one or just cancel"
PAGE_NUMBER_EXISTS = "Page number already exists"
PAGE_NUMBER_NOT_POSITIVE = "Page number should not be equal or less than 0"
DESCRIPTION_TOO_LONG = f"Please limit your description to {BOOK_DESCRIPTION_MAX_LENGTH} characters"


@contextmanager
def write_transaction(db: Session, action: str, duplicate: Optional[DuplicateError] = None) -> Iterator[None]:
    """Commit the enclosed writes as one unit, or roll all of them back."""
    try:
        yield
        db.commit()
    except IntegrityError:
        db.rollback()
        if duplicate is not None:
            raise duplicate
        logger.exception("%s violated a database constraint", action)
        raise StorageError(f"{action} failed")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("%s failed", action)
        raise StorageError(f"{action} failed")


# ---- Genres ----

def list_genres(db: Session) -> List[str]:
    rows = db.query(Genre.label).distinct().order_by(Genre.label.asc()).all()
    return [label for (label,) in rows]


def genre_exists(db: Session, label: str) -> bool:
    return db.query(Genre.id).filter(Genre.label == label).first() is not None


def get_genre(db: Session, genre_id: int) -> Genre:
    genre = db.query(Genre).filter(Genre.id == genre_id).first()
    if not genre:
        raise NotFoundError("Genre not found")
    return genre


def create_genre(db: Session, label: str) -> Genre:
    if is_blank(label):
        raise ValidationError("Genre is required", field="genre", value=label)
    duplicate = DuplicateError(GENRE_EXISTS, field="genre", value=label)
    if genre_exists(db, label):
        raise duplicate
    genre = Genre(label=label)
    with write_transaction(db, "Creating genre", duplicate):
        db.add(genre)
    db.refresh(genre)
    logger.info("Created genre %r", label)
    return genre


def _resolve_genre(db: Session, label: str) -> Genre:
    if is_blank(label):
        raise ValidationError("Please choose or add a genre for your book", field="genre", value=label)
    genre = db.query(Genre).filter(Genre.label == label).first()
    if not genre:
        raise ValidationError("Genre does not exist, add it first", field="genre", value=label)
    return genre


# ---- Books ----

def _check_book_fields(title: str, description: str) -> None:
    if is_blank(title):
        raise ValidationError("Please add a title for your book", field="title", value=title)
    if is_blank(description):
        raise ValidationError("Please add a brief description of your book", field="description", value=description)
    if len(description) > BOOK_DESCRIPTION_MAX_LENGTH:
        raise ValidationError(DESCRIPTION_TOO_LONG, field="description", value=description)


def list_books(db: Session) -> List[Book]:
    return db.query(Book).order_by(Book.id.asc()).all()


def list_books_by_author(db: Session, author_id: int) -> List[Book]:
    return db.query(Book).filter(Book.author_id == author_id).order_by(Book.id.asc()).all()


def get_book(db: Session, book_id: int) -> Book:
    book = db.query(Book).filter(Book.id == book_id).first()
    if not book:
        raise NotFoundError("Book not found")
    return book


def get_author(db: Session, book: Book) -> User:
    author = db.query(User).filter(User.id == book.author_id).first()
    if not author:
        raise NotFoundError("Author of this book not found")
    return author


def create_book(db: Session, author_id: int, title: str, genre_label: str, description: str) -> Book:
    _check_book_fields(title, description)
    genre = _resolve_genre(db, genre_label)
    book = Book(title=title, genre_id=genre.id, description=description, author_id=author_id)
    with write_transaction(db, "Creating book"):
        db.add(book)
    db.refresh(book)
    logger.info("User %s created book %s", author_id, book.id)
    return book


def update_book(db: Session, book_id: int, title: str, genre_label: str, description: str) -> Book:
    book = get_book(db, book_id)
    _check_book_fields(title, description)
    genre = _resolve_genre(db, genre_label)
    with write_transaction(db, "Updating book"):
        book.title = title
        book.genre_id = genre.id
        book.description = description
    db.refresh(book)
    return book


def delete_book(db: Session, book_id: int) -> None:
    """Delete a book together with its pages and the access requests made on it."""
    book = get_book(db, book_id)
    with write_transaction(db, "Deleting book"):
        pages = db.query(Page).filter(Page.book_id == book.id).all()
        for page in pages:
            db.delete(page)
        for request in db.query(AccessRequest).filter(AccessRequest.book_id == book.id).all():
            db.delete(request)
        # pages must be gone before the book row
        db.flush()
        db.delete(book)
    logger.info("Deleted book %s with %d pages", book_id, len(pages))


# ---- Pages ----

def list_pages(db: Session, book_id: int) -> List[Page]:
    return (
        db.query(Page)
        .filter(Page.book_id == book_id)
        .order_by(Page.page_number.asc())
        .all()
    )


def get_page(db: Session, page_id: int) -> Page:
    page = db.query(Page).filter(Page.id == page_id).first()
    if not page:
        raise NotFoundError("Page not found")
    return page


def page_number_taken(db: Session, book_id: int, page_number: int, exclude_page_id: Optional[int] = None) -> bool:
    q = db.query(Page.id).filter(Page.book_id == book_id, Page.page_number == page_number)
    if exclude_page_id is not None:
        q = q.filter(Page.id != exclude_page_id)
    return q.first() is not None


def _check_page_fields(chapter_name: str, page_number: int, body: str) -> None:
    if is_blank(chapter_name):
        raise ValidationError("Chapter name should not be empty", field="chapterName", value=chapter_name)
    if page_number is None or page_number <= 0:
        raise ValidationError(PAGE_NUMBER_NOT_POSITIVE, field="pageNumber", value=page_number)
    if is_blank(body):
        raise ValidationError("Page should not be empty", field="body", value=body)


def create_page(db: Session, book_id: int, chapter_name: str, page_number: int, body: str) -> Page:
    _check_page_fields(chapter_name, page_number, body)
    book = get_book(db, book_id)
    duplicate = DuplicateError(PAGE_NUMBER_EXISTS, field="pageNumber", value=page_number)
    if page_number_taken(db, book.id, page_number):
        raise duplicate
    page = Page(book_id=book.id, chapter_name=chapter_name, page_number=page_number, body=body)
    with write_transaction(db, "Creating page", duplicate):
        db.add(page)
    db.refresh(page)
    return page


def update_page(db: Session, page_id: int, chapter_name: str, page_number: int, body: str) -> Page:
    page = get_page(db, page_id)
    _check_page_fields(chapter_name, page_number, body)
    duplicate = DuplicateError(PAGE_NUMBER_EXISTS, field="pageNumber", value=page_number)
    # keeping the page's own number is always allowed
    if page_number != page.page_number and page_number_taken(db, page.book_id, page_number, exclude_page_id=page.id):
        raise duplicate
    with write_transaction(db, "Updating page", duplicate):
        page.chapter_name = chapter_name
        page.page_number = page_number
        page.body = body
    db.refresh(page)
    return page


def delete_page(db: Session, page_id: int) -> None:
    page = get_page(db, page_id)
    with write_transaction(db, "Deleting page"):
        db.delete(page)


# ---- Access requests ----

def create_access_request(db: Session, book_id: int, requester_id: int, message: str) -> AccessRequest:
    if is_blank(message):
        raise ValidationError("Please send the author a request message.", field="request", value=message)
    book = get_book(db, book_id)
    access_request = AccessRequest(book_id=book.id, requester_id=requester_id, message=message)
    with write_transaction(db, "Creating access request"):
        db.add(access_request)
    db.refresh(access_request)
    logger.info("User %s requested access to book %s", requester_id, book.id)
    return access_request


def list_access_requests_for_author(db: Session, author_id: int) -> List[AccessRequest]:
    return (
        db.query(AccessRequest)
        .join(Book, Book.id == AccessRequest.book_id)
        .filter(Book.author_id == author_id)
        .order_by(AccessRequest.created_at.desc(), AccessRequest.id.desc())
        .all()
    )
