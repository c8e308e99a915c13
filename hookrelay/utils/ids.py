# hookrelay/utils/ids.py
import secrets

HOOK_ID_LENGTH = 12
EVENT_ID_LENGTH = 16


def generate_id(length: int) -> str:
    """Random URL-safe token of exactly ``length`` characters."""
    # token_urlsafe(n) yields ceil(4n/3) characters
    return secrets.token_urlsafe(length)[:length]


def generate_hook_id() -> str:
    return generate_id(HOOK_ID_LENGTH)


def generate_event_id() -> str:
    return generate_id(EVENT_ID_LENGTH)
