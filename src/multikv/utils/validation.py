"""Key path validation utilities."""

from urllib.parse import unquote

from multikv.exceptions import InvalidKeyError

KEY_SEPARATOR = "/"

# Segments that would let a key escape its parent on the filesystem
FORBIDDEN_SEGMENTS = frozenset({".", ".."})


def normalize_key(path: str, allow_root: bool = False, max_length: int = 1024) -> str:
    """Validate and normalize a hierarchical key path.

    Leading and trailing separators are stripped and repeated separators
    collapsed, so "/users//alice/" and "users/alice" address the same key.

    Args:
        path: The key path to validate
        allow_root: Whether the empty path (the backend root) is accepted
        max_length: Maximum allowed length of the normalized path

    Returns:
        The normalized key path

    Raises:
        InvalidKeyError: If the path is invalid
    """
    if not isinstance(path, str):
        raise InvalidKeyError(f"Key path must be a string, got {type(path).__name__}")

    # Decode URL-encoded characters first to catch encoded traversal attempts
    decoded = unquote(path)
    if "\x00" in decoded or "\\" in decoded:
        raise InvalidKeyError(f"Invalid key path: {path!r}")

    # Encoded separators count too, so "a%2F..%2Fb" is rejected like "a/../b"
    for segment in decoded.split(KEY_SEPARATOR):
        if segment in FORBIDDEN_SEGMENTS:
            raise InvalidKeyError(f"Invalid key path: {path!r} contains {segment!r}")

    segments = [segment for segment in path.split(KEY_SEPARATOR) if segment]

    normalized = KEY_SEPARATOR.join(segments)
    if not normalized and not allow_root:
        raise InvalidKeyError("Key path cannot be empty")

    if len(normalized) > max_length:
        raise InvalidKeyError(f"Key path exceeds maximum length of {max_length}")

    return normalized


def join_key(*parts: str) -> str:
    """Join key path segments, skipping empty parts."""
    stripped = (part.strip(KEY_SEPARATOR) for part in parts)
    return KEY_SEPARATOR.join(part for part in stripped if part)
