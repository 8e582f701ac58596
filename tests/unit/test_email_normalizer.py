"""Unit tests for email normalization (HTML stripping, links, mock dataset).

Tests cover:
- html_to_text tag stripping and the five supported entities
- Link extraction order and duplicates
- Raw mock records: defaults, generated ids, HTML bodies
- Batch normalization dropping empty bodies
- MockEmailSource file handling
"""

from __future__ import annotations

import json

from tigerswipe.email.mock_source import MockEmailSource
from tigerswipe.email.normalizer import (
    DEFAULT_SENDER,
    DEFAULT_SUBJECT,
    normalize_batch,
    normalize_raw_email,
)
from tigerswipe.observability.telemetry import get_counter
from tigerswipe.utils.html import html_to_text, looks_like_html
from tigerswipe.utils.links import (
    extract_google_form_urls,
    extract_links,
    is_application_form_url,
)


class TestHtmlToText:
    def test_strips_tags_and_scripts(self):
        html = "<html><head><style>p{color:red}</style><script>alert(1)</script></head><body><p>Hello <b>there</b></p></body></html>"
        lines = html_to_text(html).splitlines()
        assert lines == ["Hello", "there"]

    def test_decodes_five_entities(self):
        text = html_to_text("<p>a&nbsp;b &lt;c&gt; &quot;d&quot; &amp; e</p>")
        assert text == 'a b <c> "d" & e'

    def test_amp_decoded_once(self):
        """&amp;lt; must become the literal '&lt;', not '<'."""
        assert html_to_text("<p>&amp;lt;</p>") == "&lt;"

    def test_block_tags_become_line_breaks(self):
        text = html_to_text("<p>first</p><p>second</p>line<br>break")
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        assert lines == ["first", "second", "line", "break"]

    def test_markup_detection(self):
        assert looks_like_html("<div>hi</div>")
        assert looks_like_html("<BR/>")
        assert not looks_like_html("Sign up <https://forms.gle/abc>")
        assert not looks_like_html("From Ana <ana@princeton.edu>")
        assert not looks_like_html("")


class TestLinkExtraction:
    def test_order_and_duplicates_preserved(self):
        body = "See https://a.com/x and https://b.com, then https://a.com/x again."
        assert extract_links(body) == ["https://a.com/x", "https://b.com", "https://a.com/x"]

    def test_stops_at_closing_paren(self):
        assert extract_links("(details: https://example.org/info)") == ["https://example.org/info"]

    def test_no_links(self):
        assert extract_links("nothing here") == []

    def test_google_forms_deduped_body_first(self):
        body = "Apply https://forms.gle/abc or https://docs.google.com/forms/d/xyz/viewform"
        links = ["https://forms.gle/abc", "https://docs.google.com/forms/d/other"]
        assert extract_google_form_urls(body, links) == [
            "https://forms.gle/abc",
            "https://docs.google.com/forms/d/xyz/viewform",
            "https://docs.google.com/forms/d/other",
        ]

    def test_application_form_recognition(self):
        assert is_application_form_url("https://docs.google.com/forms/d/e/1FAIp/viewform")
        assert is_application_form_url("https://forms.gle/abc123")
        assert not is_application_form_url("https://test.org/apply")
        assert not is_application_form_url(None)


class TestNormalizeRawEmail:
    def test_defaults_for_missing_fields(self):
        email = normalize_raw_email({"body": "Some text"}, 3)
        assert email.id == "mock-3"
        assert email.from_address == DEFAULT_SENDER
        assert email.subject == DEFAULT_SUBJECT
        assert email.received_at

    def test_html_body_is_converted(self):
        email = normalize_raw_email(
            {"id": "x", "body": "<p>Apply: https://forms.gle/abc</p>"}, 0
        )
        assert "<p>" not in email.body
        assert email.links == ["https://forms.gle/abc"]

    def test_links_come_from_final_body(self):
        email = normalize_raw_email(
            {"id": "x", "body": "Go to https://one.example and https://two.example"}, 0
        )
        assert email.links == ["https://one.example", "https://two.example"]

    def test_bracketed_form_link_in_plain_text_survives(self):
        email = normalize_raw_email(
            {"id": "m1", "body": "Club meetup. Sign up <https://docs.google.com/forms/d/abc/viewform>"}, 0
        )
        assert email.body == "Club meetup. Sign up <https://docs.google.com/forms/d/abc/viewform>"
        assert email.links == ["https://docs.google.com/forms/d/abc/viewform"]

    def test_html_body_converted_with_entities(self):
        email = normalize_raw_email({"id": "x", "body": "<div>Food &amp; drinks</div>"}, 0)
        assert email.body == "Food & drinks"


class TestNormalizeBatch:
    def test_drops_empty_bodies_and_counts_them(self):
        emails = normalize_batch(
            [
                {"id": "a", "body": "kept"},
                {"id": "b", "body": ""},
                {"id": "c", "body": "<div>   </div>"},
            ]
        )
        assert [email.id for email in emails] == ["a"]
        assert get_counter("email.normalize.dropped_empty") == 2

    def test_skips_non_objects(self):
        emails = normalize_batch([{"id": "a", "body": "kept"}, "junk", 42])
        assert [email.id for email in emails] == ["a"]


class TestMockEmailSource:
    def test_missing_file_yields_empty_inbox(self, tmp_path):
        source = MockEmailSource(tmp_path / "missing.json")
        assert source.load() == []

    def test_corrupt_file_yields_empty_inbox(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        assert MockEmailSource(path).load() == []

    def test_non_array_yields_empty_inbox(self, tmp_path):
        path = tmp_path / "obj.json"
        path.write_text(json.dumps({"id": "x"}), encoding="utf-8")
        assert MockEmailSource(path).load() == []

    def test_loads_and_memoizes(self, tmp_path):
        path = tmp_path / "emails.json"
        path.write_text(
            json.dumps([{"subject": "One", "body": "first"}, {"id": "two", "body": "second"}]),
            encoding="utf-8",
        )
        source = MockEmailSource(path)
        first = source.load()
        assert [email.id for email in first] == ["mock-0", "two"]

        path.write_text("[]", encoding="utf-8")
        assert source.load() is first

    def test_bundled_dataset_loads(self):
        emails = MockEmailSource().load()
        assert emails
        assert all(email.body.strip() for email in emails)
