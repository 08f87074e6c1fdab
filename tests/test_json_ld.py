"""
Unit tests for JSON-LD helpers.
"""

from datetime import datetime, timezone

from sleet.domain.json_ld import copy_properties, create, format_json, get_date_string, get_types, parse_date, strip_nulls


class TestFormatJson:
    """Test suite for key ordering"""

    def test_key_order(self):
        """Should put @id and @type first, arrays after plain values and @context last"""
        value = {
            "@context": {},
            "items": [],
            "Zeta": 1,
            "alpha": 2,
            "@type": "x",
            "@id": "y",
        }
        assert list(format_json(value)) == ["@id", "@type", "alpha", "Zeta", "items", "@context"]

    def test_nested(self):
        """Should order nested objects too"""
        value = {"items": [{"b": 1, "@id": "x", "a": 2}]}
        assert list(format_json(value)["items"][0]) == ["@id", "a", "b"]

    def test_strip_nulls(self):
        """Should remove None values recursively"""
        assert strip_nulls({"a": None, "b": [{"c": None, "d": 1}]}) == {"b": [{"d": 1}]}


class TestDocumentHelpers:
    """Test suite for document creation helpers"""

    def test_create_and_types(self):
        """Should write @id and @type"""
        json = create("https://x/a.json", ["A", "B"])
        assert json == {"@id": "https://x/a.json", "@type": ["A", "B"]}
        assert get_types(json) == ["A", "B"]
        assert get_types(create("u", "A")) == ["A"]

    def test_copy_properties(self):
        """Should copy only present properties"""
        target = {}
        copy_properties({"a": 1, "b": None, "c": ""}, target, ["a", "b", "c"], skip_empty=True)
        assert target == {"a": 1}


class TestDates:
    """Test suite for date strings"""

    def test_round_trip(self):
        """Should parse what it writes"""
        now = datetime(2024, 1, 2, 3, 4, 5, 123456, tzinfo=timezone.utc)
        text = get_date_string(now)
        assert text == "2024-01-02T03:04:05.1234560Z"
        assert parse_date(text) == now

    def test_parse_without_fraction(self):
        """Should accept ISO dates without fractions"""
        assert parse_date("2024-01-02T03:04:05Z") == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
