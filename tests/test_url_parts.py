"""
Unit tests for the six-slot URL decomposition.
"""

import pytest

from searx_edge.search.url_parts import decompose

pytestmark = pytest.mark.unit


class TestDecompose:
    """Tests for decompose()."""

    def test_https_with_query(self):
        assert decompose("https://example.com/a/b?x=1") == (
            "https",
            "example.com",
            "/a/b",
            "",
            "x=1",
            "",
        )

    def test_empty_string(self):
        assert decompose("") == ("", "", "", "", "", "")

    def test_http_without_path(self):
        assert decompose("http://example.com") == ("http", "example.com", "", "", "", "")

    def test_host_with_trailing_slash(self):
        assert decompose("https://example.com/") == ("https", "example.com", "/", "", "", "")

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("ftp://files.example.com/x", ("", "ftp:", "//files.example.com/x", "", "", "")),
            ("HTTPS://example.com/x", ("", "HTTPS:", "//example.com/x", "", "", "")),
            ("//cdn.example.com/a.js", ("", "", "//cdn.example.com/a.js", "", "", "")),
            ("example.com/path", ("", "example.com", "/path", "", "", "")),
        ],
    )
    def test_unrecognized_scheme_is_not_consumed(self, url, expected):
        """Only the literal http:// and https:// prefixes count as a scheme."""
        assert decompose(url) == expected

    def test_query_split_at_first_question_mark(self):
        assert decompose("https://example.com/p?a=1?b=2") == (
            "https",
            "example.com",
            "/p",
            "",
            "a=1?b=2",
            "",
        )

    def test_no_decoding_or_slash_normalization(self):
        assert decompose("https://example.com//a%20b//c?q=%E7%8C%AB") == (
            "https",
            "example.com",
            "//a%20b//c",
            "",
            "q=%E7%8C%AB",
            "",
        )

    def test_fragment_stays_in_path_or_query(self):
        """Fragments are not split out; the sixth slot is always empty."""
        assert decompose("https://example.com/a#top")[2] == "/a#top"
        assert decompose("https://example.com/a?x=1#top")[4] == "x=1#top"

    def test_reserved_slots_always_empty(self):
        parts = decompose("https://user@example.com:8443/a;p?q=1")
        assert parts[3] == ""
        assert parts[5] == ""
        assert parts[1] == "user@example.com:8443"
        assert parts[2] == "/a;p"
