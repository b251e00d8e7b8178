"""Input Sanitization: script vectors, control characters, caps and URL policy."""

from hive.core.sanitize import (
    MAX_MESSAGE_LINES, MAX_NAME_LENGTH, contains_sql_injection, escape_html,
    is_valid_uuid, is_xss_safe, sanitize_agent_name, sanitize_email, sanitize_filename,
    sanitize_json, sanitize_message_content, sanitize_text, sanitize_url, strip_html,
)


def test_sanitize_text_removes_script_tags_and_handlers():
    text = 'hi <script>alert(1)</script><img onerror=x> javascript:go()'
    cleaned = sanitize_text(text)
    assert "<script" not in cleaned
    assert "onerror=" not in cleaned
    assert "javascript:" not in cleaned
    assert cleaned.startswith("hi")


def test_sanitize_text_keeps_newlines_but_drops_control_chars():
    assert sanitize_text("a\x00b\nc\x07") == "ab\nc"


def test_empty_inputs_return_empty_values():
    assert sanitize_text("") == ""
    assert sanitize_message_content("") == ""
    assert sanitize_agent_name("") == ""
    assert sanitize_url("") is None


def test_message_content_normalizes_line_endings_and_caps_lines():
    text = "\r\n".join(f"line {i}" for i in range(MAX_MESSAGE_LINES + 50))
    cleaned = sanitize_message_content(text)
    assert "\r" not in cleaned
    assert len(cleaned.split("\n")) == MAX_MESSAGE_LINES


def test_agent_name_strips_unsafe_characters_and_truncates():
    assert sanitize_agent_name('Bob <"the">; builder') == "Bob the builder"
    assert len(sanitize_agent_name("x" * 500)) == MAX_NAME_LENGTH


def test_escape_and_strip_html():
    assert escape_html("<a href='x'>") == "&lt;a href&#x3D;&#x27;x&#x27;&gt;"
    assert strip_html("<b>bold</b> &amp; more") == "bold & more"


def test_sanitize_url_accepts_http_and_rejects_others():
    assert sanitize_url(" https://example.com/hook ") == "https://example.com/hook"
    assert sanitize_url("ftp://example.com") is None
    assert sanitize_url("https://user:pw@example.com") is None
    assert sanitize_url("not a url") is None


def test_sanitize_filename_collapses_dots_and_unsafe_chars():
    assert sanitize_filename("../../etc/passwd") == "_._etc_passwd"
    assert sanitize_filename("report.final.v2.pdf") == "report_final_v2.pdf"


def test_sanitize_email_lowercases():
    assert sanitize_email("  Ada@Example.COM ") == "ada@example.com"


def test_sanitize_json_roundtrips_or_falls_back():
    assert sanitize_json('{"a": 1}') == '{"a":1}'
    assert sanitize_json("{broken") == "{}"


def test_predicates():
    assert contains_sql_injection("1; DROP TABLE users")
    assert not contains_sql_injection("hello world")
    assert is_xss_safe("plain text")
    assert not is_xss_safe("<script>x</script>")
    assert is_valid_uuid("123e4567-e89b-12d3-a456-426614174000")
    assert not is_valid_uuid("123")
