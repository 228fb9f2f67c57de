"""Anonymous chat sessions identified by a cookie."""

from __future__ import annotations

import uuid

from fastapi import Request, Response

SESSION_COOKIE = "chat_session_id"
SESSION_MAX_AGE_SECONDS = 60 * 60 * 24 * 30


def set_session_cookie(response: Response, session_id: str, secure: bool = False) -> None:
    response.set_cookie(
        key=SESSION_COOKIE,
        value=session_id,
        max_age=SESSION_MAX_AGE_SECONDS,
        path="/",
        httponly=True,
        secure=secure,
        samesite="lax",
    )


def get_or_create_session_id(
    request: Request, response: Response, secure: bool = False
) -> str:
    """
    Return the caller's session id, issuing a new cookie if there is none.

    A newly issued id is also kept on ``request.state.new_session_id`` so
    error handlers that build their own response can still send the cookie.
    """
    session_id = request.cookies.get(SESSION_COOKIE)
    if session_id:
        return session_id

    session_id = str(uuid.uuid4())
    request.state.new_session_id = session_id
    set_session_cookie(response, session_id, secure=secure)
    return session_id


def attach_new_session(request: Request, response: Response, secure: bool = False) -> None:
    """Copy a session id issued during this request onto ``response``."""
    session_id = getattr(request.state, "new_session_id", None)
    if session_id:
        set_session_cookie(response, session_id, secure=secure)
