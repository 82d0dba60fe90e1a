from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Date,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    func,
)
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()

BOOK_DESCRIPTION_MAX_LENGTH = 200


# =========================
# User
# =========================


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_name = Column(String(100), unique=True, nullable=False)
    # always stored lowercase
    email = Column(String(255), unique=True, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    birthday = Column(Date, nullable=False)
    password_hash = Column(String(255), nullable=False)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    books = relationship("Book", back_populates="author")
    access_requests = relationship("AccessRequest", back_populates="requester")


# =========================
# Genre / Book / Page
# =========================


class Genre(Base):
    __tablename__ = "genres"

    id = Column(Integer, primary_key=True, autoincrement=True)
    label = Column(String(100), unique=True, nullable=False)

    books = relationship("Book", back_populates="genre")


class Book(Base):
    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(String(BOOK_DESCRIPTION_MAX_LENGTH), nullable=False)
    genre_id = Column(Integer, ForeignKey("genres.id"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    genre = relationship("Genre", back_populates="books")
    author = relationship("User", back_populates="books")
    # no delete cascade: delete_book removes pages explicitly
    pages = relationship("Page", back_populates="book", order_by="Page.page_number")
    access_requests = relationship("AccessRequest", back_populates="book")


class Page(Base):
    __tablename__ = "pages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False, index=True)
    chapter_name = Column(String(255), nullable=False)
    page_number = Column(Integer, nullable=False)
    body = Column(Text, nullable=False)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    book = relationship("Book", back_populates="pages")

    __table_args__ = (
        UniqueConstraint("book_id", "page_number", name="uq_page_book_number"),
        CheckConstraint("page_number > 0", name="ck_page_number_positive"),
    )


# =========================
# Access requests
# =========================


class AccessRequest(Base):
    __tablename__ = "access_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False, index=True)
    requester_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    book = relationship("Book", back_populates="access_requests")
    requester = relationship("User", back_populates="access_requests")
