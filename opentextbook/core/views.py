"""Presentation adapter.

Pages are handed over as a template name plus a view model. HTML rendering
lives outside this service, so the adapter serialises the pair as JSON and
attaches the session's pending flash messages (consumed on read).
"""
from typing import Any, Dict, List, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, RedirectResponse

from .auth import RequestContext
from .errors import FieldError


def render(ctx: RequestContext, template: str, status_code: int = status.HTTP_200_OK, **view_model: Any) -> JSONResponse:
    body: Dict[str, Any] = {
        "template": template,
        "messages": ctx.consume_messages(),
        "user": ctx.user_id,
    }
    body.update(view_model)
    return ctx.apply(JSONResponse(status_code=status_code, content=jsonable_encoder(body)))


def render_errors(
    ctx: RequestContext,
    template: str,
    errors: List[FieldError],
    form: Optional[Dict[str, Any]] = None,
    **view_model: Any,
) -> JSONResponse:
    """Re-render a form with its validation errors and the submitted input echoed back."""
    return render(
        ctx,
        template,
        status_code=status.HTTP_400_BAD_REQUEST,
        errors=[e.model_copy(update={"value": None}) if e.param in _SECRET_FIELDS else e for e in errors],
        input=_echo(form or {}),
        **view_model,
    )


def redirect(ctx: RequestContext, url: str) -> RedirectResponse:
    return ctx.apply(RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER))


_SECRET_FIELDS = {"password", "password2", "current_password", "new_password", "confirm_new_password"}


def _echo(form: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in form.items() if k not in _SECRET_FIELDS}
