"""
Tests for markup helpers
"""

from core.content import escape_html, html_to_text, is_html, text_to_html
from core.content.markup import parse_fragment, serialize


class TestEscape:

    def test_ampersand_first(self):
        assert escape_html("&lt;") == "&amp;lt;"

    def test_all_special_characters(self):
        assert escape_html("<a href=\"x\">'</a>") == "&lt;a href=&quot;x&quot;&gt;&#39;&lt;/a&gt;"

    def test_text_to_html_line_breaks(self):
        assert text_to_html("a\r\nb\rc\nd") == "a<br>b<br>c<br>d"

    def test_text_to_html_empty(self):
        assert text_to_html("") == ""
        assert text_to_html(None) == ""


class TestIsHtml:

    def test_detects_tags(self):
        assert is_html("<p>x</p>")
        assert is_html("a<br>b")

    def test_plain_text(self):
        assert not is_html("no tags here")
        assert not is_html("")
        assert not is_html(None)


class TestHtmlToText:

    def test_line_breaks(self):
        assert html_to_text("line1<br>line2") == "line1\nline2"

    def test_blocks(self):
        assert html_to_text("<div>a</div><div>b</div>") == "a\nb"
        assert html_to_text("<p>a</p>text") == "a\ntext"

    def test_entities_decoded(self):
        assert html_to_text("a &amp; b") == "a & b"

    def test_inline_tags_dropped(self):
        assert html_to_text("<b>bold</b> and <i>italic</i>") == "bold and italic"

    def test_skipped_elements(self):
        assert html_to_text("<style>p{}</style>x") == "x"

    def test_projection_round_trip(self):
        text = "first\nsecond & third"
        assert html_to_text(text_to_html(text)) == text


class TestTree:

    def test_serialize_round_trip(self):
        markup = '<p style="text-align: center;"><b>x</b><br>y</p>'
        assert serialize(parse_fragment(markup)) == markup

    def test_unclosed_tags_tolerated(self):
        root = parse_fragment("<b>open")
        assert serialize(root) == "<b>open</b>"

    def test_stray_end_tag_ignored(self):
        assert serialize(parse_fragment("a</i>b")) == "ab"

    def test_style_parsing(self):
        root = parse_fragment('<span style="color: red; font-size:12px">x</span>')
        span = root.children[0]
        assert span.style() == {"color": "red", "font-size": "12px"}
