"""
Tests for masking and request context collection.

Copyright (c) 2025 Graziano Labs Corp.
"""

import pytest
from markupsafe import Markup
from crashview.config import DebugConfig
from crashview.context.collector import (
    ContextCollector,
    SECTION_TRUNCATED,
    estimate_size,
    limit_section,
)
from crashview.context.masking import (
    HIDDEN,
    OVERFLOW_KEY,
    is_sensitive_key,
    mask_value,
    sanitize_mapping,
    truncate_string,
)
from crashview.models import FileMeta, RawRequest, RequestSnapshot


@pytest.fixture
def collector(tmp_path):
    return ContextCollector(DebugConfig(project_root=str(tmp_path)))


# Masking

@pytest.mark.parametrize("key", [
    "password", "user_password", "API_KEY", "X-Auth-Token", "Authorization",
    "csrf_token", "Cookie", "stripe_secret", "db_credentials",
])
def test_sensitive_keys(key):
    """Keys containing sensitive vocabulary are detected case-insensitively."""
    assert is_sensitive_key(key)


@pytest.mark.parametrize("key", ["username", "email", "page", "Accept"])
def test_non_sensitive_keys(key):
    """Ordinary keys are left alone."""
    assert not is_sensitive_key(key)


def test_mask_keeps_edges():
    """Long values keep their first and last two characters."""
    assert mask_value("supersecret") == "su*******et"


def test_mask_short_value():
    """Values up to four characters are fully masked."""
    assert mask_value("abcd") == "****"
    assert mask_value("ab") == "**"


def test_mask_non_string():
    """Non-string values are hidden entirely."""
    assert mask_value(123456) == HIDDEN
    assert mask_value({"nested": "x"}) == HIDDEN


@pytest.mark.parametrize("secret", ["hunter22", "abcde", "sk_live_0123456789"])
def test_masked_value_never_equals_input(secret):
    """Masking always changes the value."""
    masked = mask_value(secret)
    assert masked != secret
    assert masked[:2] == secret[:2]
    assert masked[-2:] == secret[-2:]


def test_truncate_string():
    """Long strings are cut to the limit with an ellipsis."""
    assert truncate_string("a" * 10, 10) == "a" * 10
    assert truncate_string("a" * 11, 10) == "aaaaaaa..."


def test_sanitize_mapping_recurses():
    """Nested mappings and lists are masked and truncated."""
    data = {
        "user": {"name": "ada", "password": "correcthorse"},
        "tags": ["x" * 300],
    }
    clean = sanitize_mapping(data, max_length=100)
    assert clean["user"]["name"] == "ada"
    assert clean["user"]["password"] == "co********se"
    assert len(clean["tags"][0]) == 100


def test_sanitize_mapping_caps_items():
    """Mappings over 50 items get an overflow marker."""
    clean = sanitize_mapping({f"k{i}": i for i in range(60)}, max_length=100)
    assert len(clean) == 51
    assert clean[OVERFLOW_KEY] == "... 10 more items"


# Collector

def test_collect_request_fields(collector):
    """Request method, URL and maps are captured."""
    raw = RawRequest(
        method="POST",
        uri="/users?page=2",
        host="example.com",
        https=True,
        headers={"Accept": "text/html"},
        query={"page": "2"},
        body={"name": "ada"},
    )
    snapshot = collector.collect(raw)
    assert snapshot.method == "POST"
    assert snapshot.url == "https://example.com/users?page=2"
    assert snapshot.headers == {"Accept": "text/html"}
    assert snapshot.query == {"page": "2"}
    assert snapshot.body == {"name": "ada"}


def test_sensitive_body_and_headers_masked(collector):
    """Passwords and auth headers never appear verbatim."""
    raw = RawRequest(
        headers={"Authorization": "Bearer abcdef123456"},
        body={"password": "hunter2hunter2", "api_key": "sk_live_123"},
    )
    snapshot = collector.collect(raw)
    assert snapshot.headers["Authorization"] != "Bearer abcdef123456"
    assert snapshot.body["password"] == "hu**********r2"
    assert snapshot.body["api_key"] != "sk_live_123"


def test_sensitive_query_parameters_hidden_in_url(collector):
    """Sensitive query values are replaced in the displayed URL."""
    snapshot = collector.collect(RawRequest(uri="/login?token=abc123&next=/home"))
    assert "abc123" not in snapshot.url
    assert "token=%5BHIDDEN%5D" in snapshot.url or "token=[HIDDEN]" in snapshot.url
    assert "next=" in snapshot.url


def test_url_is_escaped_markup(collector):
    """The URL is escaped once and marked safe."""
    snapshot = collector.collect(RawRequest(uri='/search?q="><script>'))
    assert isinstance(snapshot.url, Markup)
    assert "<script>" not in snapshot.url


def test_host_characters_filtered(collector):
    """Host names are reduced to hostname characters."""
    snapshot = collector.collect(RawRequest(host="evil.com<script>", uri="/"))
    assert snapshot.url == "http://evil.comscript/"


def test_long_uri_truncated(collector):
    """URIs over 2000 characters are truncated with a marker."""
    snapshot = collector.collect(RawRequest(uri="/" + "a" * 5000))
    assert snapshot.url.endswith("... [truncated]")
    assert len(snapshot.url) < 2100


def test_headers_derived_from_server(collector):
    """HTTP_* server variables become headers when none are given."""
    raw = RawRequest(server={"HTTP_USER_AGENT": "pytest", "HTTP_ACCEPT_LANGUAGE": "en"})
    snapshot = collector.collect(raw)
    assert snapshot.headers == {"User-Agent": "pytest", "Accept-Language": "en"}


def test_server_keys_filtered(collector):
    """Only allow-listed server variables are reported."""
    raw = RawRequest(server={"SERVER_NAME": "web1", "SECRET_SAUCE": "x", "SERVER_PORT": 80})
    snapshot = collector.collect(raw)
    assert snapshot.server == {"SERVER_NAME": "web1", "SERVER_PORT": 80}


def test_environment_allow_list(collector):
    """Environment variables are allow-listed; runtime facts are added."""
    raw = RawRequest(environ={"APP_ENV": "local", "DATABASE_URL": "postgres://u:p@h/db"})
    snapshot = collector.collect(raw)
    assert snapshot.env["APP_ENV"] == "local"
    assert "DATABASE_URL" not in snapshot.env
    assert "PYTHON_VERSION" in snapshot.env


def test_files_metadata_only(collector):
    """Uploads are reported by metadata."""
    raw = RawRequest(files={"avatar": FileMeta(name="me.png", type="image/png", size=2048)})
    snapshot = collector.collect(raw)
    assert snapshot.files["avatar"] == {
        "name": "me.png", "type": "image/png", "size": 2048, "error": 0,
    }


def test_no_session(collector):
    """Without an active session the section is empty."""
    assert collector.collect(RawRequest()).session == {}


def test_session_masked(collector):
    """Session values go through the same masking."""
    snapshot = collector.collect(RawRequest(session={"user_id": 7, "_token": "abcdefgh"}))
    assert snapshot.session["user_id"] == 7
    assert snapshot.session["_token"] == "ab****gh"


def test_host_markup_becomes_plain_text(collector):
    """Markup values from the host lose their trusted status."""
    snapshot = collector.collect(RawRequest(
        session={"flash": Markup("<b>saved</b>"), "_token": Markup("<i>abcdefgh</i>")},
        body={"comment": Markup("<script>x</script>")},
    ))
    assert snapshot.session["flash"] == "<b>saved</b>"
    assert type(snapshot.session["flash"]) is str
    assert type(snapshot.session["_token"]) is str
    assert type(snapshot.body["comment"]) is str


def test_collect_without_request(collector):
    """Collecting nothing yields an empty request."""
    snapshot = collector.collect()
    assert snapshot.method == "UNKNOWN"
    assert snapshot.body == {}


def test_collect_is_stateless(collector):
    """Two collections of the same input are identical."""
    raw = RawRequest(method="GET", uri="/a", query={"x": "1"})
    assert collector.collect(raw) == collector.collect(raw)


# Budget

def test_context_bounded_by_budget(tmp_path):
    """500 keys of 100 characters stay under a small budget with a marker."""
    budget = 4096
    collector = ContextCollector(DebugConfig(project_root=str(tmp_path), context_budget_bytes=budget))
    body = {f"field_{i}": "v" * 100 for i in range(500)}

    snapshot = collector.collect(RawRequest(method="POST", uri="/bulk", body=body))
    serialized = estimate_size(snapshot.as_sections())
    assert serialized < budget

    text = str(snapshot.as_sections())
    assert SECTION_TRUNCATED in text or "more items" in text


def test_context_bounded_by_default_budget(collector):
    """The item cap keeps large inputs far below the default budget."""
    body = {f"field_{i}": "v" * 100 for i in range(500)}
    snapshot = collector.collect(RawRequest(body=body))
    assert estimate_size(snapshot.as_sections()) < collector.config.context_budget_bytes
    assert snapshot.body[OVERFLOW_KEY] == "... 450 more items"


def test_limit_section_single_pass():
    """Sections are cut at the first entry that does not fit."""
    section = {f"k{i}": "x" * 50 for i in range(20)}
    limited = limit_section(section, 300)
    assert estimate_size(limited) <= 300
    assert limited["..."] == SECTION_TRUNCATED
    assert list(limited)[:-1] == [f"k{i}" for i in range(len(limited) - 1)]


def test_limit_section_fits_unchanged():
    """Sections within budget are returned as-is."""
    section = {"a": 1}
    assert limit_section(section, 100) is section


def test_snapshot_sections_round_trip():
    """Sections view and constructor agree."""
    snapshot = RequestSnapshot(method="GET", url="http://x/", query={"a": "1"}, env={"APP_ENV": "t"})
    assert RequestSnapshot.from_sections(snapshot.as_sections()) == snapshot


def test_environment_query_string_masked(collector):
    """Sensitive values in QUERY_STRING are hidden too."""
    raw = RawRequest(environ={"QUERY_STRING": "page=2&password=hunter2hunter2"})
    snapshot = collector.collect(raw)
    assert "hunter2hunter2" not in snapshot.env["QUERY_STRING"]
    assert snapshot.env["QUERY_STRING"].startswith("page=2&password=")
