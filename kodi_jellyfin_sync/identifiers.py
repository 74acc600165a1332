import uuid

from .errors import InvalidIdentifierLength

def format_identifier(raw: bytes) -> str:
    """Formats a raw 16-byte Jellyfin guid as 8-4-4-4-12 hex. No version/variant checks."""
    if len(raw) != 16:
        raise InvalidIdentifierLength(len(raw))
    return str(uuid.UUID(bytes=bytes(raw)))

def parse_identifier(text: str) -> bytes:
    return uuid.UUID(text).bytes

def display_identifier(raw: bytes) -> str:
    """For log lines: falls back to plain hex when the guid is malformed."""
    try:
        return format_identifier(raw)
    except InvalidIdentifierLength:
        return raw.hex()
