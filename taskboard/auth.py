"""Authentication: verified identity token, role looked up server-side."""

from __future__ import annotations

from fastapi import Depends, Request

from taskboard.db_models import User
from taskboard.errors import Unauthenticated
from taskboard.identity import IdentityVerifier, get_identity_verifier
from taskboard.services.users import get_or_provision
from taskboard.store import Store, get_store


def bearer_token(request: Request) -> str:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        raise Unauthenticated("Missing or invalid Authorization header")
    return auth[7:].strip()


async def get_current_user(
    request: Request,
    store: Store = Depends(get_store),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> User:
    """Resolve the caller. Any role sent by the client is ignored."""
    identity = verifier.verify(bearer_token(request))
    return await get_or_provision(store, identity.uid, identity.claims.get("name"))


AuthUser = Depends(get_current_user)
