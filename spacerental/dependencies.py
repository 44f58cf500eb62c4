"""Reusable FastAPI dependencies for identity and service access."""
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from .auth import subject_from_token
from .booking.service import BookingService

oauth_scheme = OAuth2PasswordBearer(tokenUrl="/users/login")


def get_current_user_id(token: str = Depends(oauth_scheme)) -> str:
    return subject_from_token(token)


def get_booking_service(request: Request) -> BookingService:
    return request.app.state.booking_service
