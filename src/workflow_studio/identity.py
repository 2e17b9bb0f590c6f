"""Caller identity and first-sight profile creation."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from workflow_studio.errors import Unauthorized
from workflow_studio.models import UserProfile
from workflow_studio.store import StoreSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CallerIdentity:
    """The authenticated caller as reported by the identity provider."""

    user_id: str
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    image_url: str | None = None

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or "User"


def require_caller(caller: CallerIdentity | None) -> CallerIdentity:
    if caller is None or not caller.user_id.strip():
        raise Unauthorized()
    return caller


def ensure_profile(session: StoreSession, caller: CallerIdentity) -> UserProfile:
    """Return the caller's profile, creating it on first sight.

    Existing profiles are never updated from the identity provider.
    """

    existing = session.get_user(caller.user_id)
    if existing is not None:
        return existing

    profile = UserProfile(
        id=caller.user_id,
        email=caller.email.strip(),
        name=caller.display_name,
        profile_image=caller.image_url,
    )
    session.add_user(profile)
    logger.info("User profile created", extra={"user_id": caller.user_id})
    return profile
