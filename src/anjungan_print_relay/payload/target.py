"""Printer share resolution for RAW and label jobs."""
from typing import Any, Optional

SHARE_FIELDS = ('printerShare', 'printer', 'share', 'shareName', 'sharePath')
UNC_PREFIX = '\\\\'
LOOPBACK_HOST = '127.0.0.1'


def resolve_printer_share(body: Any) -> Optional[str]:
    """Return the first non-empty share alias from the body, trimmed, or None."""
    if not isinstance(body, dict):
        return None
    for field in SHARE_FIELDS:
        value = body.get(field)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def build_share_path(name: str) -> str:
    """Pass UNC paths (\\\\host\\share) through, expand bare names to the local share."""
    if name.startswith(UNC_PREFIX):
        return name
    return f'{UNC_PREFIX}{LOOPBACK_HOST}\\{name}'


def share_queue_name(share_path: str) -> str:
    """Last segment of a share path, i.e. the queue name CUPS knows the printer by."""
    return share_path.rstrip('\\/').replace('/', '\\').split('\\')[-1]
