from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import RequestContext, authenticate, get_current_user, get_request_context
from ..core.errors import AuthError, DuplicateError
from ..core.validation import read_form
from ..core.views import redirect, render, render_errors
from ..database import get_db
from ..models import User
from ..schemas.book import AccessRequestRead, BookRead
from ..schemas.forms import login_form, modify_user_form, register_form, to_date
from ..schemas.user import UserRead
from ..services import accounts, content

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/register", summary="Registration form")
def register_page(ctx: RequestContext = Depends(get_request_context)):
    return render(ctx, "register")


@router.post("/register", summary="Register a new user")
def register(
    form: Dict[str, Any] = Depends(read_form),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    errors = register_form.validate(form, db)
    if errors:
        return render_errors(ctx, "register", errors, form)
    try:
        accounts.register_user(
            db,
            user_name=form["userName"],
            first_name=form["firstName"],
            last_name=form["lastName"],
            birthday=to_date(form["birthday"]),
            email=form["email"],
            password=form["password"],
            hash_rounds=ctx.settings.password_hash_rounds,
        )
    except DuplicateError as e:
        ctx.flash("failure", e.message)
        return redirect(ctx, "/users/register")
    ctx.flash("success", "You are now registered and can log in")
    return redirect(ctx, "/users/login")


@router.get("/login", summary="Login form")
def login_page(ctx: RequestContext = Depends(get_request_context)):
    return render(ctx, "login")


@router.post("/login", summary="Log in and start a session")
def login(
    form: Dict[str, Any] = Depends(read_form),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    if login_form.validate(form, db):
        ctx.flash("failure", "Missing credentials")
        return redirect(ctx, "/users/login")
    try:
        user = authenticate(db, str(form["username"]), str(form["password"]))
    except AuthError as e:
        ctx.flash("failure", e.message)
        return redirect(ctx, "/users/login")
    ctx.login(user)
    return redirect(ctx, "/users/profile")


@router.get("/logout", summary="End the session")
def logout(ctx: RequestContext = Depends(get_request_context)):
    ctx.logout()
    ctx.flash("success", "You are successfully logged out")
    ctx.flash("success", "Thanks for using OpenSource TextBook!")
    return redirect(ctx, "/users/login")


@router.get("/profile", summary="Own profile, books and received access requests")
def profile(
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    books = content.list_books_by_author(db, current_user.id)
    requests = content.list_access_requests_for_author(db, current_user.id)
    return render(
        ctx,
        "profile",
        profile=UserRead.model_validate(current_user),
        books=[BookRead.model_validate(b) for b in books],
        requests=[AccessRequestRead.model_validate(r) for r in requests],
    )


@router.get("/modify", summary="Profile edit form")
def modify_page(
    ctx: RequestContext = Depends(get_request_context),
    current_user: User = Depends(get_current_user),
):
    return render(ctx, "modify", profile=UserRead.model_validate(current_user))


@router.post("/modify", summary="Update own profile and password")
def modify(
    form: Dict[str, Any] = Depends(read_form),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    errors = modify_user_form.validate(form, db)
    if errors:
        return render_errors(ctx, "modify", errors, form, profile=UserRead.model_validate(current_user))
    try:
        accounts.update_profile(
            db,
            current_user,
            first_name=form["firstName"],
            last_name=form["lastName"],
            birthday=to_date(form["birthday"]),
            current_password=str(form["current_password"]),
            new_password=str(form.get("new_password") or ""),
            hash_rounds=ctx.settings.password_hash_rounds,
        )
    except AuthError as e:
        ctx.flash("failure", e.message)
        return redirect(ctx, "/users/modify")
    ctx.flash("success", "Updated Successfully")
    return redirect(ctx, "/users/login")
