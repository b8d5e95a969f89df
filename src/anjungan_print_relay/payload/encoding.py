"""
Hex and base64 decoders used by the payload extractor.

decode_hex raises on malformed input because hex is only tried when the
caller asked for it. decode_base64_tolerant never raises: a None result lets
the extractor fall through to the next interpretation.
"""
import base64
import binascii
import re
from typing import Optional

from anjungan_print_relay.errors import InvalidEncoding

HEX_RE = re.compile(r'^[0-9a-fA-F]+$')
BASE64_BODY_RE = re.compile(r'^[0-9A-Za-z+/]+$')
_WHITESPACE_RE = re.compile(r'\s+')


def strip_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub('', text)


def looks_like_hex(text: str) -> bool:
    """True for non-empty, even-length, hex-only text (whitespace ignored)."""
    stripped = strip_whitespace(text)
    return bool(stripped) and len(stripped) % 2 == 0 and bool(HEX_RE.match(stripped))


def decode_hex(text: str) -> Optional[bytes]:
    """
    Decode a hex string, ignoring whitespace.

    Returns None when nothing is left after stripping whitespace.

    Raises:
        InvalidEncoding: odd length or characters outside [0-9a-fA-F]
    """
    normalized = strip_whitespace(text)
    if not normalized:
        return None
    if len(normalized) % 2 != 0:
        raise InvalidEncoding("Hex payload must have an even length")
    if not HEX_RE.match(normalized):
        raise InvalidEncoding("Hex payload contains invalid characters")
    return bytes.fromhex(normalized)


def decode_base64_tolerant(text: str) -> Optional[bytes]:
    """
    Decode standard or URL-safe base64, with or without padding.

    Returns None instead of raising when the input is not base64 or decodes
    to zero bytes.
    """
    normalized = strip_whitespace(text).replace('-', '+').replace('_', '/')
    bare = normalized.rstrip('=')
    if not bare or not BASE64_BODY_RE.match(bare):
        return None
    padded = bare + '=' * (-len(bare) % 4)
    try:
        decoded = base64.b64decode(padded, validate=True)
    except (binascii.Error, ValueError):
        return None
    return decoded or None
