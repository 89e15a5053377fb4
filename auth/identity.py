"""
auth/identity.py -- Startup wiring for bearer token authentication.

add_identity_services() is called once from the application lifespan. It
builds the token issuer and the validation parameters from the same Settings
and parks both on app.state, where route handlers and auth.dependencies pick
them up. Nothing here is rebuilt per request and there is no hot reload: a
new TOKEN_KEY takes effect on restart.

A missing or short TOKEN_KEY raises TokenConfigurationError here, so the
process refuses to start rather than sign tokens with a weak key.
"""

from __future__ import annotations

import logging

from auth.tokens import TokenService, build_validation_parameters
from core.config import Settings

logger = logging.getLogger("datingapp.auth")


def add_identity_services(app, settings: Settings) -> None:
    """Attach token_service and token_validation to app.state."""
    app.state.token_service = TokenService(
        settings.token_key,
        expire_days=settings.token_expire_days,
        issuer=settings.token_issuer if settings.validate_issuer else None,
        audience=settings.token_audience if settings.validate_audience else None,
    )
    app.state.token_validation = build_validation_parameters(
        settings.token_key,
        validate_issuer=settings.validate_issuer,
        valid_issuer=settings.token_issuer,
        validate_audience=settings.validate_audience,
        valid_audience=settings.token_audience,
    )
    logger.info(
        "Bearer auth configured (expire_days=%d, validate_issuer=%s, validate_audience=%s)",
        settings.token_expire_days,
        settings.validate_issuer,
        settings.validate_audience,
    )
