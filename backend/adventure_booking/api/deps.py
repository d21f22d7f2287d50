"""
Request-scoped dependencies.

The caller is described by an explicit BookingContext built from headers
set by the web front end. Authentication happens upstream; this service
only threads the identity through to the booking core.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status


@dataclass(frozen=True)
class BookingContext:
    session_id: str
    user_id: Optional[str] = None


def get_booking_context(
    x_user_id: Optional[str] = Header(None, max_length=64),
    x_session_id: Optional[str] = Header(None, max_length=64),
) -> BookingContext:
    return BookingContext(
        session_id=x_session_id or uuid.uuid4().hex[:12],
        user_id=x_user_id or None,
    )


def get_current_user_id(ctx: BookingContext = Depends(get_booking_context)) -> str:
    if not ctx.user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Sign in to manage bookings",
        )
    return ctx.user_id
