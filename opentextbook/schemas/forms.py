"""Rule sets for every form the site accepts. Field names are the submitted form keys."""
from datetime import date
from typing import Any, Optional

from ..core.validation import (
    Check,
    FormValidator,
    IsEmail,
    IsInteger,
    Matches,
    MaxLength,
    MinLength,
    Required,
    is_blank,
    to_int,
)
from ..models import BOOK_DESCRIPTION_MAX_LENGTH, Page
from ..services import content


def to_date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    if is_blank(value):
        return None
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def _positive(value, data, db) -> bool:
    number = to_int(value)
    # non-numeric input is reported by IsInteger
    return number is None or number > 0


register_form = FormValidator({
    "userName": [
        Required("Username is required"),
        MinLength(2, "Username should at least be 2 characters long"),
    ],
    "firstName": [
        Required("Firstname is required"),
        MinLength(2, "Firstname should at least be 2 characters long"),
    ],
    "lastName": [
        Required("Lastname is required"),
        MinLength(2, "Lastname should at least be 2 characters long"),
    ],
    "birthday": [
        Required("Birthday is required"),
        Check(lambda v, d, db: is_blank(v) or to_date(v) is not None, "Birthday must be a date (YYYY-MM-DD)"),
    ],
    "email": [
        Required("Email is required"),
        IsEmail("Email is not valid"),
    ],
    "password": [
        Required("Password is required"),
        MinLength(8, "Password must have 8 characters"),
    ],
    "password2": [
        Matches("password", "Passwords do not match"),
    ],
})

modify_user_form = FormValidator({
    "firstName": [
        Required("Firstname is required"),
        MinLength(2, "Firstname should at least be 2 characters long"),
    ],
    "lastName": [
        Required("Lastname is required"),
        MinLength(2, "Lastname should at least be 2 characters long"),
    ],
    "birthday": [
        Required("Birthday is required"),
        Check(lambda v, d, db: is_blank(v) or to_date(v) is not None, "Birthday must be a date (YYYY-MM-DD)"),
    ],
    "current_password": [
        Required("Current Password is required"),
    ],
    "new_password": [
        MinLength(8, "Password must have 8 characters"),
    ],
    "confirm_new_password": [
        Matches("new_password", "Passwords do not match"),
    ],
})

login_form = FormValidator({
    "username": [Required("Username is required")],
    "password": [Required("Password is required")],
})

genre_form = FormValidator({
    "genre": [
        Required("Genre is required"),
        Check(lambda v, d, db: is_blank(v) or not content.genre_exists(db, str(v)), content.GENRE_EXISTS),
    ],
})

_book_rules = {
    "title": [Required("Please add a title for your book")],
    "genre": [
        Required("Please choose or add a genre for your book"),
        Check(lambda v, d, db: is_blank(v) or content.genre_exists(db, str(v)), "Genre does not exist, add it first"),
    ],
    "description": [
        Required("Please add a brief description of your book"),
        MaxLength(BOOK_DESCRIPTION_MAX_LENGTH, content.DESCRIPTION_TOO_LONG),
    ],
}

add_book_form = FormValidator(_book_rules)
modify_book_form = FormValidator(dict(_book_rules, title=[Required("Title is required")]))

access_request_form = FormValidator({
    "request": [Required("Please send the author a request message.")],
})


def add_page_form(book_id: int) -> FormValidator:
    def number_free(value, data, db) -> bool:
        number = to_int(value)
        return number is None or not content.page_number_taken(db, book_id, number)

    return FormValidator({
        "chapterName": [Required("Chapter name should not be empty")],
        "pageNumber": [
            Required("Page number should not be empty"),
            IsInteger("Page number must be a whole number"),
            Check(_positive, content.PAGE_NUMBER_NOT_POSITIVE),
            Check(number_free, content.PAGE_NUMBER_EXISTS),
        ],
        "body": [Required("Page should not be empty")],
    })


def modify_page_form(page: Page) -> FormValidator:
    def number_free(value, data, db) -> bool:
        number = to_int(value)
        if number is None or number == page.page_number:
            return True
        return not content.page_number_taken(db, page.book_id, number, exclude_page_id=page.id)

    return FormValidator({
        "chapterName": [Required("Chapter name is required")],
        "pageNumber": [
            Required("Page number is required"),
            IsInteger("Page number must be a whole number"),
            Check(_positive, content.PAGE_NUMBER_NOT_POSITIVE),
            Check(number_free, content.PAGE_NUMBER_EXISTS),
        ],
        "body": [Required("Content is required")],
    })
