"""Authenticated principal resolved from a bearer credential."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Principal:
    """Who is asking, as vouched for by the identity provider.

    Attributes:
        user_id: Identity provider user ID (equal to the local user ID).
        email: Email the provider has on record.
    """

    user_id: str
    email: str
