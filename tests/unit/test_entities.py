"""Unit tests for entity decoding and summary cleanup."""

from tldrit.ingestion.entities import clean_summary, decode_html_entities, strip_html, truncate


class TestDecodeHtmlEntities:
    """Tests for decode_html_entities."""

    def test_named_entities(self):
        """Should decode the common named entities."""
        assert decode_html_entities("Tom &amp; Jerry &quot;live&quot; &lt;now&gt;") == 'Tom & Jerry "live" <now>'

    def test_numeric_entities(self):
        """Should decode decimal and hex references."""
        assert decode_html_entities("It&#39;s here") == "It's here"
        assert decode_html_entities("It&#x2019;s here") == "It’s here"

    def test_nbsp_becomes_space(self):
        assert decode_html_entities("a&nbsp;b") == "a b"

    def test_single_pass_only(self):
        """Double-encoded text should decode one level, not to a fixpoint."""
        text = "&amp;lt;b&amp;gt;Hello&amp;lt;/b&amp;gt; World"
        assert decode_html_entities(text) == "&lt;b&gt;Hello&lt;/b&gt; World"

    def test_idempotent_on_plain_text(self):
        """Text without entities should pass through unchanged."""
        text = "Plain headline, no entities"
        assert decode_html_entities(text) == text
        assert decode_html_entities(decode_html_entities(text)) == text

    def test_unknown_entity_left_alone(self):
        """Unknown names should pass through, even when a known name is a prefix."""
        assert decode_html_entities("a &bogus; b") == "a &bogus; b"
        assert decode_html_entities("&copyright;") == "&copyright;"
        assert decode_html_entities("a&notanentity; b") == "a&notanentity; b"
        assert decode_html_entities("Q&amplify;") == "Q&amplify;"

    def test_unterminated_entity_left_alone(self):
        assert decode_html_entities("AT&T &copy 2025") == "AT&T &copy 2025"

    def test_listed_named_entities(self):
        text = "&apos;&#039;&copy;&reg;&trade;&euro;&pound;&yen;&cent;"
        assert decode_html_entities(text) == "''\u00a9\u00ae\u2122\u20ac\u00a3\u00a5\u00a2"

    def test_empty(self):
        assert decode_html_entities("") == ""


class TestSummaryCleanup:
    """Tests for strip_html, truncate and clean_summary."""

    def test_strip_html(self):
        assert strip_html("<p>Hello <b>World</b></p>") == "Hello World"
        assert strip_html(None) == ""

    def test_truncate(self):
        """Should keep short text and cut long text with a marker."""
        assert truncate("short", 10) == "short"
        assert truncate("abcdefghij", 10) == "abcdefghij"
        assert truncate("abcdefghijk", 10) == "abcdefghij..."

    def test_clean_summary(self):
        """Should strip tags, then decode entities, then trim."""
        assert clean_summary("  <p>Fish &amp; chips</p>  ") == "Fish & chips"

    def test_clean_summary_keeps_encoded_markup_as_text(self):
        """Entity-encoded markup is decoded after tag stripping, so it stays visible."""
        assert clean_summary("&lt;b&gt;bold&lt;/b&gt;") == "<b>bold</b>"

    def test_clean_summary_truncates(self):
        """Should cap summaries at the configured length."""
        summary = clean_summary("x" * 400)
        assert summary == "x" * 300 + "..."
        assert clean_summary("y" * 50, limit=20) == "y" * 20 + "..."

    def test_clean_summary_empty(self):
        assert clean_summary(None) == ""
        assert clean_summary("") == ""
