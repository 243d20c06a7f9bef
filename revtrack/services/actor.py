"""Authenticated actor context.

Resolved once per request by ``revtrack.middleware.actor_context`` and passed
explicitly to every service call; services never read ``flask.g``.
"""

from __future__ import annotations

from dataclasses import dataclass

from revtrack.core.exceptions import AuthenticationRequired


@dataclass(frozen=True)
class ActorContext:
    """The authenticated owner on whose behalf a call runs."""

    owner_id: str

    def __post_init__(self):
        if not self.owner_id or not str(self.owner_id).strip():
            raise AuthenticationRequired()

