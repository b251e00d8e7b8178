"""Input Sanitization: pure string cleaners and safety predicates for user content.

Invariants:
    - Every function accepts empty/None-ish input and returns the empty value of its type
    - Length caps: messages 50_000 chars / 500 lines, prompts 100_000, names 100, filenames 255
    - No function raises on arbitrary text (sanitize_url returns None instead)
"""

import json
import re
from urllib.parse import urlsplit

HTML_ENTITIES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "/": "&#x2F;",
    "`": "&#x60;",
    "=": "&#x3D;",
}

DANGEROUS_PATTERNS = [
    re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"data:\s*text/html", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
    re.compile(r"expression\s*\(", re.IGNORECASE),
    re.compile(r"url\s*\(\s*['\"]?\s*javascript:", re.IGNORECASE),
]

SQL_INJECTION_PATTERNS = [
    re.compile(
        r"\b(SELECT|INSERT|UPDATE|DELETE|DROP|CREATE|ALTER|TRUNCATE|EXEC|UNION|DECLARE)\b",
        re.IGNORECASE,
    ),
    re.compile(r"('|\"|;|--|/\*|\*/|@@|@)"),
    re.compile(r"(\bOR\b|\bAND\b)\s+[\w'\"=]+", re.IGNORECASE),
    re.compile(r"\b(CHAR|NCHAR|VARCHAR|NVARCHAR)\s*\(", re.IGNORECASE),
    re.compile(r"\b(WAITFOR|DELAY|BENCHMARK)\b", re.IGNORECASE),
]

# Keeps \t \n \r
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_ALL_CONTROL_CHARS = re.compile(r"[\x00-\x1F\x7F]")
_NAME_UNSAFE = re.compile(r"[<>\"'`&;]")
_UUID = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

MAX_MESSAGE_LENGTH = 50_000
MAX_MESSAGE_LINES = 500
MAX_PROMPT_LENGTH = 100_000
MAX_NAME_LENGTH = 100
MAX_FILENAME_LENGTH = 255


def _strip_dangerous(text: str) -> str:
    for pattern in DANGEROUS_PATTERNS:
        text = pattern.sub("", text)
    return text


def escape_html(text: str) -> str:
    if not text:
        return ""
    return "".join(HTML_ENTITIES.get(ch, ch) for ch in text)


def strip_html(text: str) -> str:
    if not text:
        return ""
    text = re.sub(r"<[^>]*>", "", text)
    for entity, char in (
        ("&nbsp;", " "), ("&amp;", "&"), ("&lt;", "<"), ("&gt;", ">"),
        ("&quot;", '"'), ("&#x27;", "'"), ("&#x2F;", "/"),
    ):
        text = text.replace(entity, char)
    return text


def sanitize_text(text: str) -> str:
    """Remove script vectors and control characters, then trim."""
    if not text:
        return ""
    text = _strip_dangerous(text)
    text = _CONTROL_CHARS.sub("", text)
    return text.strip()


def sanitize_message_content(content: str) -> str:
    """Normalize a chat message: control chars, script vectors, line endings, caps."""
    if not content:
        return ""
    text = _CONTROL_CHARS.sub("", content)
    text = _strip_dangerous(text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = text.split("\n")
    if len(lines) > MAX_MESSAGE_LINES:
        text = "\n".join(lines[:MAX_MESSAGE_LINES])
    if len(text) > MAX_MESSAGE_LENGTH:
        text = text[:MAX_MESSAGE_LENGTH]
    return text.strip()


def sanitize_agent_name(name: str) -> str:
    if not name:
        return ""
    text = _NAME_UNSAFE.sub("", name)
    text = _ALL_CONTROL_CHARS.sub("", text).strip()
    return text[:MAX_NAME_LENGTH]


def sanitize_swarm_name(name: str) -> str:
    return sanitize_agent_name(name)


def sanitize_agent_prompt(prompt: str) -> str:
    if not prompt:
        return ""
    text = _CONTROL_CHARS.sub("", prompt)
    text = _strip_dangerous(text)
    if len(text) > MAX_PROMPT_LENGTH:
        text = text[:MAX_PROMPT_LENGTH]
    return text.strip()


def contains_sql_injection(text: str) -> bool:
    if not text:
        return False
    return any(p.search(text) for p in SQL_INJECTION_PATTERNS)


def sanitize_for_sql(text: str) -> str:
    if not text:
        return ""
    return text.replace("\\", "\\\\").replace("'", "''").replace("\0", "")


def sanitize_filename(filename: str) -> str:
    """Make a user-supplied filename safe for storage keys."""
    if not filename:
        return ""
    text = re.sub(r"[<>:\"/\\|?*\x00-\x1F]", "_", filename)
    text = re.sub(r"\.{2,}", ".", text)
    text = text.strip(".")

    parts = text.split(".")
    if len(parts) > 2:
        ext = parts.pop()
        text = "_".join(parts) + "." + ext

    if len(text) > MAX_FILENAME_LENGTH:
        ext = text.rsplit(".", 1)[-1]
        text = text[: MAX_FILENAME_LENGTH - len(ext) - 1] + "." + ext
    return text


def sanitize_url(url: str) -> str | None:
    """Return the URL if it is http(s) without embedded credentials, else None."""
    if not url:
        return None
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.hostname:
        return None
    if parts.username or parts.password:
        return None
    return parts.geturl()


def sanitize_email(email: str) -> str:
    if not email:
        return ""
    return _NAME_UNSAFE.sub("", email.lower().strip())


def sanitize_json(text: str) -> str:
    if not text:
        return ""
    try:
        return json.dumps(json.loads(text), separators=(",", ":"))
    except (ValueError, TypeError):
        return "{}"


def is_xss_safe(text: str) -> bool:
    if not text:
        return True
    return not any(p.search(text) for p in DANGEROUS_PATTERNS)


def is_sql_safe(text: str) -> bool:
    return not contains_sql_injection(text)


def is_valid_uuid(value: str) -> bool:
    if not value:
        return False
    return bool(_UUID.match(value))


def render_safe_text(content: str) -> str:
    return escape_html(sanitize_text(content))
