import html
from datetime import datetime, timezone
from typing import Optional
import bleach


def utcnow() -> datetime:
    """Single clock for row timestamps and token iat/exp."""
    return datetime.now(timezone.utc)


def sanitize_input(value: Optional[str]) -> str:
    """Strip markup from a user-supplied string before it is stored.

    - Removes every HTML tag (no allow-list) with bleach
    - Keeps the remaining text verbatim: entities bleach escapes are
      unescaped again, punctuation such as '&', '<', ';' and '--' survives
    - Drops NULL bytes and trims whitespace
    """
    if value is None:
        return ""
    # remove NULL bytes
    val = value.replace("\x00", "")
    val = bleach.clean(val, tags=set(), attributes={}, strip=True)
    return html.unescape(val).strip()
