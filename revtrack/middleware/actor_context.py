"""
Actor Context Middleware — resolves the authenticated owner of a request.

Authentication itself happens upstream (reverse proxy / identity gateway),
which forwards the owner id in the ``ACTOR_HEADER`` header (default
``X-Actor-Id``). This middleware:
  1. reads the header on /api/v1/ requests
  2. falls back to DEV_ACTOR_ID when configured (development only)
  3. sets g.actor to an ActorContext, or None when no owner is known

It never blocks a request. Blueprints call ``current_actor()``, which raises
AuthenticationRequired (HTTP 401) when g.actor is None; services receive the
ActorContext explicitly and never read g.

Chain order:
  timing.py  →  actor_context.py  →  route handler
"""

import logging

from flask import current_app, g, request

from revtrack.core.exceptions import AuthenticationRequired
from revtrack.services.actor import ActorContext

logger = logging.getLogger(__name__)

# Paths that never carry an actor
ACTOR_SKIP_PREFIXES = (
    "/api/v1/health",
    "/static/",
)

_MAX_OWNER_ID_LENGTH = 64


def resolve_actor(header_value: str | None, fallback: str | None = None) -> ActorContext | None:
    owner_id = (header_value or "").strip() or (fallback or "").strip()
    if not owner_id or len(owner_id) > _MAX_OWNER_ID_LENGTH:
        return None
    return ActorContext(owner_id=owner_id)


def init_actor_context(app):
    """Register actor context middleware as a before_request hook."""

    @app.before_request
    def _actor_context():
        g.actor = None

        if not request.path.startswith("/api/v1/"):
            return None
        for prefix in ACTOR_SKIP_PREFIXES:
            if request.path.startswith(prefix):
                return None

        header = app.config.get("ACTOR_HEADER", "X-Actor-Id")
        g.actor = resolve_actor(request.headers.get(header), app.config.get("DEV_ACTOR_ID"))
        if g.actor is None and request.headers.get(header):
            logger.warning("Rejected malformed %s header on %s", header, request.path)
        return None

    logger.info("Actor context middleware installed")


def current_actor() -> ActorContext:
    """The request's actor; raises AuthenticationRequired when none was resolved."""
    actor = getattr(g, "actor", None)
    if actor is None:
        raise AuthenticationRequired(
            f"Authentication required: missing {current_app.config.get('ACTOR_HEADER', 'X-Actor-Id')} header"
        )
    return actor
