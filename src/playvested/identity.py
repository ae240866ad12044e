"""
Identity chain storage for a PlayVested session.

A session is identified by three identifiers:

    publisher  -> the developer reporting earnings ("devID" on the wire)
    application -> the game the earnings come from ("gameID" on the wire)
    player     -> the individual player the earnings are credited to

Identifiers are opaque strings. ``None`` means "unset". Older hosts pass a
24-character string of zeros for "unset"; that value is normalized to
``None`` on the way in and is never stored.

The store only ever moves identifiers toward validity: ``set_if_valid`` and
``bind_player`` refuse invalid input instead of overwriting an established
value with garbage.
"""

from __future__ import annotations

from dataclasses import dataclass

# Placeholder some hosts still send instead of an empty value.
LEGACY_UNSET_ID = "0" * 24

IDENTITY_FIELDS = ("publisher_id", "application_id", "player_id")


def is_valid(identifier: str | None) -> bool:
    """Return True if ``identifier`` names a real entity."""
    return bool(identifier) and identifier != LEGACY_UNSET_ID


def normalize_identifier(identifier: str | None) -> str | None:
    """Map every flavour of "unset" to ``None``."""
    return identifier if is_valid(identifier) else None


@dataclass
class IdentityStore:
    """
    Identifiers and charity label for the active session.

    Attributes:
        publisher_id: Publisher (developer) identifier, set by init.
        application_id: Application (game) identifier, set by init.
        player_id: Player identifier, set by init or by a completed
            create/link exchange.
        charity_name: Charity the player chose when the player was created.

    Example:
        store = IdentityStore()
        store.set_if_valid("application_id", "game-1")   # True
        store.set_if_valid("application_id", "")         # False, keeps game-1
    """

    publisher_id: str | None = None
    application_id: str | None = None
    player_id: str | None = None
    charity_name: str = ""

    def set_if_valid(self, field_name: str, identifier: str | None) -> bool:
        """
        Assign an identifier only if it is valid.

        Args:
            field_name: One of ``publisher_id``, ``application_id``, ``player_id``.
            identifier: Candidate value.

        Returns:
            True if the value was stored, False if it was ignored.

        Raises:
            ValueError: If ``field_name`` is not an identity field.
        """
        if field_name not in IDENTITY_FIELDS:
            raise ValueError(f"unknown identity field: {field_name!r}")
        if not is_valid(identifier):
            return False
        setattr(self, field_name, identifier)
        return True

    def bind_player(self, player_id: str | None) -> bool:
        """Bind the player identifier returned by the ledger."""
        return self.set_if_valid("player_id", player_id)

    def clear_player(self) -> None:
        self.player_id = None

    def clear_charity(self) -> None:
        self.charity_name = ""

    @property
    def has_publisher(self) -> bool:
        return is_valid(self.publisher_id)

    @property
    def has_application(self) -> bool:
        return is_valid(self.application_id)

    @property
    def has_player(self) -> bool:
        return is_valid(self.player_id)
