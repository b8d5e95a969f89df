"""
Raw payload extraction: turns an untyped request body into one byte buffer.

Clients have sent RAW jobs under many field names and encodings over time.
Extraction runs a fixed list of rules, first non-None result wins:

  1. byte-array fields     rawBytes, bytes, ... (list of 0-255 ints or a Buffer object)
  2. rawHex                hex, fails fast when malformed
  3. hex-hint fields       hex, hexData, ... same fail-fast rule
  4. string candidates     known aliases, then a last-resort scan of the body
  5. interpretation        encoding option / field hint, else base64 → hex → utf-8
"""
import logging
from typing import Any, Callable, Optional, Tuple

from anjungan_print_relay.errors import InvalidEncoding
from anjungan_print_relay.payload.encoding import (
    decode_base64_tolerant,
    decode_hex,
    looks_like_hex,
)
from anjungan_print_relay.payload.target import SHARE_FIELDS

logger = logging.getLogger(__name__)

BYTE_ARRAY_FIELDS = (
    'rawBytes',
    'bytes',
    'dataBytes',
    'payloadBytes',
    'buffer',
    'rawBuffer',
)
STRING_PAYLOAD_FIELDS = (
    'rawBase64',
    'dataBase64',
    'raw',
    'rawData',
    'payload',
    'rawPayload',
    'data',
    'text',
    'command',
    'commands',
    'lines',
    'base64',
    'base64Data',
    'bytesBase64',
    'content',
    'value',
)
BASE64_HINT_FIELDS = frozenset({
    'rawBase64',
    'dataBase64',
    'base64',
    'base64Data',
    'bytesBase64',
})
RAW_HEX_FIELD = 'rawHex'
HEX_HINT_FIELDS = ('hex', 'hexData', 'dataHex', 'payloadHex')

# Options and routing fields; never picked up by the last-resort scan.
CONTROL_FIELDS = frozenset(SHARE_FIELDS) | {
    'encoding',
    'newline',
    'width',
    'heightPx',
    'html',
    'pdfBase64',
}

Rule = Callable[[dict], Optional[bytes]]


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------

def is_byte_array(value: Any) -> bool:
    return (
        isinstance(value, list)
        and len(value) > 0
        and all(
            isinstance(v, int) and not isinstance(v, bool) and 0 <= v <= 255
            for v in value
        )
    )


def buffer_from_buffer_like(value: Any) -> Optional[bytes]:
    """
    Accept bytes, a list of byte values, or a serialized Node Buffer
    ({"type": "Buffer", "data": [...]}). Anything else returns None.
    """
    if isinstance(value, (bytes, bytearray)):
        return bytes(value) or None
    if is_byte_array(value):
        return bytes(value)
    if (
        isinstance(value, dict)
        and value.get('type') == 'Buffer'
        and is_byte_array(value.get('data'))
    ):
        return bytes(value['data'])
    return None


def _non_empty_string(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


def _declared_encoding(body: dict) -> Optional[str]:
    encoding = body.get('encoding')
    if isinstance(encoding, str):
        return encoding.strip().lower()
    return None


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

def from_byte_array_fields(body: dict) -> Optional[bytes]:
    for field in BYTE_ARRAY_FIELDS:
        candidate = buffer_from_buffer_like(body.get(field))
        if candidate:
            return candidate
    return None


def from_raw_hex(body: dict) -> Optional[bytes]:
    value = _non_empty_string(body.get(RAW_HEX_FIELD))
    if value is None:
        return None
    return decode_hex(value)


def from_hex_hint_fields(body: dict) -> Optional[bytes]:
    for field in HEX_HINT_FIELDS:
        value = _non_empty_string(body.get(field))
        if value is not None:
            return decode_hex(value)
    return None


def find_string_candidate(body: dict) -> Optional[Tuple[Any, Optional[str]]]:
    """
    Return (value, source_field) for the first usable payload field.

    value is either a str to be interpreted, or bytes that need no decoding.
    source_field is None when the value came from the last-resort scan of a
    byte-array-like property.
    """
    for field in STRING_PAYLOAD_FIELDS:
        value = body.get(field)
        if isinstance(value, str) and value:
            return value, field
        if isinstance(value, list) and value:
            if is_byte_array(value):
                return bytes(value), field
            if all(isinstance(v, str) for v in value):
                return ''.join(value), field

    # Last resort for unknown client conventions.
    scannable = [(k, v) for k, v in body.items() if k not in CONTROL_FIELDS]
    for key, value in scannable:
        if isinstance(value, str) and value:
            logger.debug(f"Using unrecognised field {key!r} as payload")
            return value, key
    for key, value in scannable:
        buffer = buffer_from_buffer_like(value)
        if buffer:
            logger.debug(f"Using unrecognised byte field {key!r} as payload")
            return buffer, None
    return None


def interpret_string(value: str, field: Optional[str], encoding: Optional[str]) -> bytes:
    """
    Decode a candidate string using the declared encoding or field hint.

    Raises:
        InvalidEncoding: an explicit hex/base64 signal was given and the text
            does not decode under it
    """
    if encoding == 'hex' or field in HEX_HINT_FIELDS or field == RAW_HEX_FIELD:
        try:
            decoded = decode_hex(value)
        except InvalidEncoding as e:
            raise InvalidEncoding(f"Failed to decode raw payload: {e.message}") from e
        if not decoded:
            raise InvalidEncoding("Failed to decode raw payload: Invalid hex payload")
        return decoded

    if encoding == 'base64' or field in BASE64_HINT_FIELDS:
        decoded = decode_base64_tolerant(value)
        if not decoded:
            raise InvalidEncoding("Failed to decode raw payload: Invalid base64 payload")
        return decoded

    if encoding in ('utf8', 'text'):
        return value.encode('utf-8')

    if encoding in ('binary', 'latin1'):
        # one byte per character, high code points truncated like Node's "binary"
        return bytes(ord(ch) & 0xFF for ch in value)

    decoded = decode_base64_tolerant(value)
    if decoded:
        return decoded
    if looks_like_hex(value):
        return decode_hex(value)
    return value.encode('utf-8')


def from_string_candidates(body: dict) -> Optional[bytes]:
    found = find_string_candidate(body)
    if found is None:
        return None
    value, field = found
    if isinstance(value, bytes):
        return value
    return interpret_string(value, field, _declared_encoding(body))


EXTRACTION_RULES: Tuple[Rule, ...] = (
    from_byte_array_fields,
    from_raw_hex,
    from_hex_hint_fields,
    from_string_candidates,
)


def extract_payload(body: Any) -> Optional[bytes]:
    """
    Resolve the RAW payload of a request body.

    Returns None when the body carries no plausible payload at all.

    Raises:
        InvalidEncoding: hex/base64 content was explicitly signalled but malformed
    """
    if not isinstance(body, dict):
        return None
    for rule in EXTRACTION_RULES:
        result = rule(body)
        if result:
            return result
    return None


# ---------------------------------------------------------------------------
# Request log summary
# ---------------------------------------------------------------------------

_SUMMARY_LENGTH_FIELDS = (
    'rawBase64', 'dataBase64', 'rawData', 'payload', 'rawPayload', 'raw',
    'rawHex', 'pdfBase64', 'html',
)
_SUMMARY_ARRAY_FIELDS = ('rawBytes', 'bytes', 'commands')


def summarize_body(body: Any) -> Optional[dict]:
    """Loggable view of a request body: targets, options and payload sizes only."""
    if not isinstance(body, dict):
        return None
    out = {}
    for key in ('printerShare', 'printer'):
        if body.get(key):
            out[key] = body[key]
    if isinstance(body.get('encoding'), str):
        out['encoding'] = body['encoding']
    if isinstance(body.get('width'), str):
        out['width'] = body['width']
    if isinstance(body.get('heightPx'), (int, float)) and not isinstance(body.get('heightPx'), bool):
        out['heightPx'] = body['heightPx']
    for key in _SUMMARY_LENGTH_FIELDS:
        if isinstance(body.get(key), str):
            out[f'{key}_len'] = len(body[key])
    for key in _SUMMARY_ARRAY_FIELDS:
        if isinstance(body.get(key), list):
            out[f'{key}_len'] = len(body[key])
    if isinstance(body.get('data'), str):
        out['data_preview'] = body['data'][:120]
    return out
