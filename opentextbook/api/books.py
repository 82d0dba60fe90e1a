from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from ..core.auth import RequestContext, get_current_user, get_request_context
from ..core.validation import read_form, to_int
from ..core.views import redirect, render, render_errors
from ..database import get_db
from ..models import Book, User
from ..schemas.book import BookDetail, BookRead, GenreRead, PageRead
from ..schemas.forms import (
    access_request_form,
    add_book_form,
    add_page_form,
    genre_form,
    modify_book_form,
    modify_page_form,
)
from ..services import content

router = APIRouter(prefix="/books", tags=["books"])


def _book_detail(db: Session, book: Book) -> Dict[str, Any]:
    author = content.get_author(db, book)
    detail = BookDetail(
        book=BookRead.model_validate(book),
        pages=[PageRead.model_validate(p) for p in content.list_pages(db, book.id)],
        genre=GenreRead.model_validate(content.get_genre(db, book.genre_id)),
        author=author.user_name,
    )
    return detail.model_dump()


@router.get("/all", response_model=List[BookRead], summary="All books as JSON")
def all_books(db: Session = Depends(get_db)):
    return content.list_books(db)


# ---- Books ----

@router.get("/add", summary="New book form")
def add_book_page(
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return render(ctx, "add_book", distinctGenre=content.list_genres(db))


@router.post("/add", summary="Create a book authored by the current user")
def add_book(
    form: Dict[str, Any] = Depends(read_form),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    errors = add_book_form.validate(form, db)
    if errors:
        return render_errors(ctx, "add_book", errors, form, distinctGenre=content.list_genres(db))
    content.create_book(
        db,
        author_id=current_user.id,
        title=form["title"],
        genre_label=form["genre"],
        description=form["description"],
    )
    ctx.flash("success", "Book successfully created")
    return redirect(ctx, "/users/profile")


@router.get("/genre", summary="New genre form")
def add_genre_page(
    ctx: RequestContext = Depends(get_request_context),
    current_user: User = Depends(get_current_user),
):
    return render(ctx, "add_genre")


@router.post("/genre", summary="Create a genre")
def add_genre(
    form: Dict[str, Any] = Depends(read_form),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    errors = genre_form.validate(form, db)
    if errors:
        return render_errors(ctx, "add_genre", errors, form)
    content.create_genre(db, form["genre"])
    ctx.flash("success", "Genre successfully created")
    return redirect(ctx, "/books/add")


@router.get("/modify/{book_id}", summary="Book edit form")
def modify_book_page(
    book_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    book = content.get_book(db, book_id)
    return render(ctx, "modify_book", book=BookRead.model_validate(book), distinctGenre=content.list_genres(db))


@router.post("/modify/{book_id}", summary="Update title, genre and description")
def modify_book(
    book_id: int,
    form: Dict[str, Any] = Depends(read_form),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    book = content.get_book(db, book_id)
    errors = modify_book_form.validate(form, db)
    if errors:
        return render_errors(
            ctx,
            "modify_book",
            errors,
            form,
            book=BookRead.model_validate(book),
            distinctGenre=content.list_genres(db),
        )
    content.update_book(
        db,
        book.id,
        title=form["title"],
        genre_label=form["genre"],
        description=form["description"],
    )
    ctx.flash("success", "Book updated Successfully")
    return redirect(ctx, f"/books/{book.id}")


@router.get("/delete/{book_id}", summary="Book delete confirmation")
def delete_book_page(
    book_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    book = content.get_book(db, book_id)
    return render(ctx, "delete_book", **_book_detail(db, book))


@router.delete("/delete/{book_id}", response_class=PlainTextResponse, summary="Delete a book and its pages")
def delete_book(
    book_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    content.delete_book(db, book_id)
    ctx.flash("success", "Book successfully deleted")
    return ctx.apply(PlainTextResponse("Successfully deleted", status_code=200))


# ---- Access requests ----

@router.get("/request/{book_id}", summary="Access request form")
def request_access_page(
    book_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    book = content.get_book(db, book_id)
    return render(ctx, "request_access", book=BookRead.model_validate(book))


@router.post("/request/{book_id}", summary="Send the author an access request")
def request_access(
    book_id: int,
    form: Dict[str, Any] = Depends(read_form),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    book = content.get_book(db, book_id)
    errors = access_request_form.validate(form, db)
    if errors:
        return render_errors(ctx, "books", errors, form, **_book_detail(db, book))
    content.create_access_request(db, book.id, current_user.id, form["request"])
    ctx.flash("success", "Request successfully sent to author")
    return redirect(ctx, f"/books/{book.id}")


# ---- Pages ----

@router.get("/page/modify/{page_id}", summary="Page edit form")
def modify_page_page(
    page_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    page = content.get_page(db, page_id)
    book = content.get_book(db, page.book_id)
    return render(ctx, "modify_page", page=PageRead.model_validate(page), book=BookRead.model_validate(book))


@router.post("/page/modify/{page_id}", summary="Update a page")
def modify_page(
    page_id: int,
    form: Dict[str, Any] = Depends(read_form),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    page = content.get_page(db, page_id)
    errors = modify_page_form(page).validate(form, db)
    if errors:
        book = content.get_book(db, page.book_id)
        return render_errors(
            ctx,
            "modify_page",
            errors,
            form,
            page=PageRead.model_validate(page),
            book=BookRead.model_validate(book),
        )
    content.update_page(
        db,
        page.id,
        chapter_name=form["chapterName"],
        page_number=to_int(form["pageNumber"]),
        body=form["body"],
    )
    ctx.flash("success", "Page updated Successfully")
    return redirect(ctx, f"/books/page/{page.id}")


@router.delete("/page/delete/{page_id}", response_class=PlainTextResponse, summary="Delete a page")
def delete_page(
    page_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    content.delete_page(db, page_id)
    ctx.flash("success", "Page successfully deleted")
    return ctx.apply(PlainTextResponse("Successfully deleted", status_code=200))


@router.get("/page/{page_id}", summary="A single page with its book")
def get_page(
    page_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    page = content.get_page(db, page_id)
    book = content.get_book(db, page.book_id)
    author = content.get_author(db, book)
    return render(
        ctx,
        "page",
        book=BookRead.model_validate(book),
        page=PageRead.model_validate(page),
        genre=GenreRead.model_validate(content.get_genre(db, book.genre_id)),
        author=author.user_name,
    )


# ---- Single book (keep last: /{book_id} would shadow the routes above) ----

@router.get("/{book_id}", summary="A book with its pages in order")
def get_book(
    book_id: int,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    book = content.get_book(db, book_id)
    return render(ctx, "books", **_book_detail(db, book))


@router.post("/{book_id}", summary="Add a page to a book")
def add_page(
    book_id: int,
    form: Dict[str, Any] = Depends(read_form),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    book = content.get_book(db, book_id)
    errors = add_page_form(book.id).validate(form, db)
    if errors:
        return render_errors(ctx, "books", errors, form, **_book_detail(db, book))
    content.create_page(
        db,
        book.id,
        chapter_name=form["chapterName"],
        page_number=to_int(form["pageNumber"]),
        body=form["body"],
    )
    ctx.flash("success", "Page successfully created")
    return redirect(ctx, f"/books/{book.id}")
