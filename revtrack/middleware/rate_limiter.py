"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in revtrack/__init__.py with no default
limits; this module applies granular limits per route category.

Usage:
    from revtrack.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import g, request as flask_request

logger = logging.getLogger(__name__)


def actor_or_ip_key():
    """Rate limit key: the request's owner when known, else remote IP."""
    actor = getattr(g, "actor", None)
    if actor is not None:
        return f"owner:{actor.owner_id}"
    return flask_request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per owner, falling back to remote IP):
        - Spreadsheet/draft ingestion:  20/minute (parses whole workbooks)
        - Revision & catalog endpoints: 120/minute
        - Indicators:                   200/minute (read only)
        - Health check:                 exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("drafts")
    if bp:
        limiter.limit("20/minute", key_func=actor_or_ip_key)(bp)

    for bp_name in ("revisions", "catalog"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit("120/minute", key_func=actor_or_ip_key)(bp)

    bp = app.blueprints.get("indicators")
    if bp:
        limiter.limit("200/minute", key_func=actor_or_ip_key)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured — drafts: 20/min, revisions/catalog: 120/min, indicators: 200/min"
    )
