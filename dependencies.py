"""
FastAPI dependency providers.

Injectable dependencies are plain functions used with FastAPI's Depends()
system. What they return is built once by the app lifespan and stored on
app.state.
"""

from __future__ import annotations

from fastapi import Request

from services.password_reset_service import PasswordResetService


def get_password_reset_service(request: Request) -> PasswordResetService:
    """Return the PasswordResetService assembled at startup."""
    return request.app.state.password_reset_service
