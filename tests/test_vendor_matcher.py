"""
Tests for known-expression compilation and vendor matching.
"""

import pytest

from mandate_ocr.matching import KnownExpression, PatternSet, VendorMatcher, normalize_text


def build(*expressions: KnownExpression) -> PatternSet:
    return PatternSet.build("acme", expressions, version="v1")


class TestPatternSet:
    """Tests for pattern set construction."""

    def test_invalid_regex_is_rejected_not_fatal(self):
        patterns = build(
            KnownExpression(1, "broken", "(unclosed", order=0),
            KnownExpression(2, "globex", "Globex", order=1),
        )
        assert patterns.rejected == (1,)
        assert len(patterns) == 1

    def test_insertion_order(self):
        patterns = build(
            KnownExpression(7, "b", "b", order=1),
            KnownExpression(3, "a", "a", order=0),
        )
        assert [c.expression.expression_id for c in patterns] == [3, 7]

    def test_empty(self):
        assert len(PatternSet.empty("acme")) == 0


class TestVendorMatcher:
    """Tests for ranking and determinism."""

    @pytest.fixture
    def matcher(self) -> VendorMatcher:
        return VendorMatcher(normalize=True)

    def test_priority_wins(self, matcher):
        patterns = build(
            KnownExpression(1, "initech", "Initech Incorporated Ltd", priority=0, order=0),
            KnownExpression(2, "globex", "Globex", priority=5, order=1),
        )
        result = matcher.match("Initech Incorporated Ltd c/o Globex", patterns)
        assert result.vendor_id == "globex"
        assert result.candidates == 2

    def test_longer_span_breaks_priority_tie(self, matcher):
        patterns = build(
            KnownExpression(1, "short", "ACME", order=0),
            KnownExpression(2, "long", "ACME Holding AG", order=1),
        )
        result = matcher.match("Rechnung der ACME Holding AG", patterns)
        assert result.vendor_id == "long"
        assert result.matched_text == "ACME Holding AG"

    def test_insertion_order_breaks_remaining_tie(self, matcher):
        patterns = build(
            KnownExpression(1, "later", "foo", order=1),
            KnownExpression(2, "earlier", "bar", order=0),
        )
        result = matcher.match("foo bar", patterns)
        assert result.vendor_id == "earlier"
        assert result.expression_id == 2

    def test_deterministic(self, matcher):
        patterns = build(
            KnownExpression(1, "a", "alpha", order=0),
            KnownExpression(2, "b", "beta", order=1),
            KnownExpression(3, "c", "gamma", order=2),
        )
        text = "gamma beta alpha"
        results = {matcher.match(text, patterns) for _ in range(20)}
        assert len(results) == 1

    def test_case_insensitive_by_default(self, matcher):
        patterns = build(KnownExpression(1, "globex", "GLOBEX"))
        assert matcher.match("globex corporation", patterns).matched

    def test_case_sensitive_expression(self, matcher):
        patterns = build(KnownExpression(1, "globex", "GLOBEX", case_sensitive=True))
        assert not matcher.match("globex corporation", patterns).matched

    def test_normalization_of_ocr_whitespace(self, matcher):
        patterns = build(KnownExpression(1, "acme", r"ACME AG"))
        result = matcher.match("ACME  \n AG", patterns)
        assert result.matched

    def test_empty_text_is_unmatched(self, matcher):
        patterns = build(KnownExpression(1, "acme", "ACME"))
        result = matcher.match("", patterns)
        assert not result.matched
        assert result.vendor_id is None

    def test_empty_pattern_set_is_unmatched(self, matcher):
        assert not matcher.match("ACME", PatternSet.empty("acme")).matched


def test_normalize_text():
    assert normalize_text("ﬁnance  AG\n\n") == "finance AG"
    assert normalize_text("") == ""
