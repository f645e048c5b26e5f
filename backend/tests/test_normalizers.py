"""
Tests for data normalization helpers.
"""

import pytest


class TestParsePrice:
    """Test price parsing in Turkish and English notation."""

    @pytest.mark.parametrize("text,expected", [
        ("1.299,90 TL", 1299.9),
        ("₺249,90", 249.9),
        ("1.299 TL", 1299.0),
        ("12.5", 12.5),
        ("1,234.56", 1234.56),
        ("49 TL", 49.0),
    ])
    def test_parse_price(self, text, expected):
        """Test that the last short group is the decimal part."""
        from scrapers.utils.normalizers import parse_price

        assert parse_price(text) == expected

    def test_parse_price_empty(self):
        """Test that missing prices stay None."""
        from scrapers.utils.normalizers import parse_price

        assert parse_price(None) is None
        assert parse_price("") is None
        assert parse_price("Tükendi") is None

    def test_parse_price_parts(self):
        """Test prices split into whole and fraction elements."""
        from scrapers.utils.normalizers import parse_price_parts

        assert parse_price_parts("1.299", "90") == 1299.9
        assert parse_price_parts("249", ",5") == 249.5
        assert parse_price_parts("49", None) == 49.0
        assert parse_price_parts(None, "90") is None


class TestOtherNormalizers:
    """Test whitespace, rating, count and category helpers."""

    def test_normalize_whitespace(self):
        from scrapers.utils.normalizers import normalize_whitespace

        assert normalize_whitespace("  Nemlendirici\n  Krem ") == "Nemlendirici Krem"
        assert normalize_whitespace("   ") is None
        assert normalize_whitespace(None) is None

    def test_parse_rating(self):
        from scrapers.utils.normalizers import parse_rating

        assert parse_rating("4,5 out of 5") == 4.5
        assert parse_rating("(4.2)") == 4.2
        assert parse_rating("yok") is None

    def test_parse_count(self):
        from scrapers.utils.normalizers import parse_count

        assert parse_count("1.234 ürün") == 1234
        assert parse_count("Toplam 87 Ürün") == 87
        assert parse_count(None) is None

    def test_join_categories(self):
        from scrapers.utils.normalizers import join_categories

        assert join_categories(["Makyaj", " Göz ", None, ""]) == "Makyaj>Göz"
        assert join_categories([]) is None

    def test_unique_keeps_order(self):
        from scrapers.utils.normalizers import unique

        assert unique(["b", "a", None, "b", "", "c"]) == ["b", "a", "c"]

    def test_capitalize_first(self):
        from scrapers.utils.normalizers import capitalize_first

        assert capitalize_first("la-roche-posay") == "La-roche-posay"
        assert capitalize_first("") == ""

    def test_strip_currency(self):
        from scrapers.utils.normalizers import strip_currency

        assert strip_currency("249,90 ₺") == "249,90"
        assert strip_currency("99 TL", "TL") == "99"
