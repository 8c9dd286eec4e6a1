import html
import re

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_WHITESPACE_RUN = re.compile(r"\s+")


def sanitize_title(value: str) -> str:
    """
    Make a validated slot title safe to store and echo back to clients.

    Control characters are dropped, whitespace runs (including newlines)
    collapse to one space, and HTML special characters are escaped.
    """
    value = _CONTROL_CHARS.sub("", value)
    value = _WHITESPACE_RUN.sub(" ", value).strip()
    return html.escape(value, quote=True)
