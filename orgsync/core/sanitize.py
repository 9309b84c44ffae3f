"""
Free-text sanitization.

Account names, descriptions, countries and the names synchronized from the
legacy system are stored sanitized. All markup is removed with nh3; the
contents of script and style elements are dropped entirely.

nh3 returns HTML-safe text, so ``&``, ``<`` and ``>`` left in the text are
stored as entities (``R&D`` becomes ``R&amp;D``). Clients rendering these
values outside HTML must unescape them.
"""

import nh3


def sanitize_text(value: str) -> str:
    """
    Strip every HTML tag from a value, keeping its text content.

    Args:
        value: Untrusted text

    Returns:
        HTML-escaped text with markup removed and surrounding whitespace trimmed

    Example:
        >>> sanitize_text("<b>North</b> Region<script>alert(1)</script>")
        'North Region'
        >>> sanitize_text("R&D Region")
        'R&amp;D Region'
    """
    return nh3.clean(value, tags=set(), attributes={}).strip()


def sanitize_optional(value: str | None) -> str | None:
    """Sanitize a value that may be missing."""
    if value is None:
        return None
    return sanitize_text(value)
