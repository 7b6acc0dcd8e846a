import html
from typing import Optional

import bleach


def sanitize_input(value: Optional[str]) -> str:
    """Sanitize a user-supplied search string.

    - Removes NULL bytes
    - Strips HTML tags using bleach.clean(..., strip=True)
    - Unescapes the entities bleach produces so ``&`` still matches stored text
    - Trims whitespace
    """
    if value is None:
        return ""
    val = value.replace("\x00", "")
    val = bleach.clean(val, tags=set(), strip=True)
    val = html.unescape(val)
    return val.strip()
