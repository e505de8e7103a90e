"""Owner-key resolution for the identity collaborator.

Authentication itself (JWT, sessions) is handled by Django/DRF.  The
storefront only needs an opaque, trusted string identifying who owns a cart
or an order and who acted on a status change.
"""

from __future__ import annotations

from rest_framework.request import Request


def user_owner_key(user_pk: object) -> str:
    return f"user:{user_pk}"


def resolve_owner_key(request: Request) -> str:
    """Return ``user:<pk>`` for authenticated users, else ``session:<key>``.

    Anonymous visitors get a session created on first use so their cart
    survives across requests.
    """
    user = getattr(request, "user", None)
    if user is not None and user.is_authenticated:
        return user_owner_key(user.pk)

    session = request.session
    if session.session_key is None:
        # An empty session is never sent back as a cookie.
        session["anonymous_cart"] = True
        session.save()
    return f"session:{session.session_key}"


def resolve_actor_id(request: Request) -> str | None:
    """Opaque actor reference recorded on status-history rows."""
    user = getattr(request, "user", None)
    if user is not None and user.is_authenticated:
        return user_owner_key(user.pk)
    return None
