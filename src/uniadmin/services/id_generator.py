"""Opaque string ids for users and emitted events."""

import secrets

USER_PREFIX = "usr_"
EVENT_PREFIX = "evt_"


def generate_id(prefix: str, nbytes: int = 8) -> str:
    """``prefix`` plus ``2 * nbytes`` hex characters, e.g. ``usr_a1b2c3d4e5f6a7b8``."""
    return prefix + secrets.token_hex(nbytes)
