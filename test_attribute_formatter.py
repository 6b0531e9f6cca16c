"""
Tests for attribute value classification.

============================================================
PRECEDENCE
============================================================
1. null / "None"            -> Absent
2. "{...}" flag string      -> FlagSet (or RawFallback if unparseable)
3. nested object            -> ComplexObject
4. "true" / "false"         -> BooleanTrue / BooleanFalse
5. known enum token         -> TranslatedEnum
6. anything else            -> RawFallback
============================================================
"""

import pytest

from attribute_formatter import (
    Absent,
    AttributeValue,
    BooleanFalse,
    BooleanTrue,
    ComplexObject,
    FlagSet,
    RawFallback,
    TranslatedEnum,
    TranslationTables,
    ValueTag,
    classify,
    display_key_name,
    parse_legacy_flag_string,
    render_text,
)


@pytest.fixture
def tables():
    return TranslationTables(
        key_display_names={"WiFi": "Wi-Fi"},
        value_display_names={
            "WiFi": {"free": "Gratis", "no": "Sin Wi-Fi"},
            "RestaurantsPriceRange2": {"2": "$$"},
        },
    )


# ============================================================
# LEGACY FLAG STRING PARSER
# ============================================================

class TestLegacyFlagParser:

    def test_python_literal_dict(self):
        parsed = parse_legacy_flag_string("{'good_for_kids': True, 'touristy': False}")
        assert parsed == {"good_for_kids": True, "touristy": False}

    def test_none_literal(self):
        assert parse_legacy_flag_string("{'garage': False, 'street': None}") == {"garage": False, "street": None}

    def test_already_json(self):
        assert parse_legacy_flag_string('{"lot": true}') == {"lot": True}

    def test_malformed_returns_none(self):
        assert parse_legacy_flag_string("{'lot': True,") is None

    def test_non_object_returns_none(self):
        assert parse_legacy_flag_string("[True, False]") is None

    def test_deeply_nested_returns_none(self):
        text = "{'a': " + "[" * 100000 + "]" * 100000 + "}"
        assert parse_legacy_flag_string(text) is None

    def test_true_inside_word_untouched(self):
        assert parse_legacy_flag_string("{'Trueblood': True}") == {"Trueblood": True}


# ============================================================
# CLASSIFY
# ============================================================

class TestClassify:

    def test_flag_string(self):
        result = classify("{'good_for_kids': True, 'touristy': False}", "Ambience", TranslationTables())
        assert result == FlagSet(("good_for_kids",))

    def test_flag_string_with_whitespace(self):
        assert classify("  {'casual': True}  ", "Ambience") == FlagSet(("casual",))

    def test_flag_string_none_active_is_unspecified(self):
        result = classify("{'romantic': False, 'classy': None}", "Ambience")
        assert result == FlagSet(())
        assert result.is_unspecified

    def test_unparseable_flag_string_falls_back_raw(self):
        raw = "{'romantic': Maybe}"
        assert classify(raw, "Ambience") == RawFallback(raw)

    def test_deeply_nested_flag_string_falls_back_raw(self):
        raw = "{'a': " + "[" * 100000 + "]" * 100000 + "}"
        result = classify(raw, "Ambience")
        assert isinstance(result, RawFallback)

    @pytest.mark.parametrize("value", [None, "None", AttributeValue.of(None)])
    def test_absent(self, value, tables):
        assert classify(value, "WiFi", tables) == Absent()

    def test_translated_enum(self, tables):
        assert classify("free", "WiFi", tables) == TranslatedEnum("Gratis")

    def test_translated_enum_with_python_quoting(self, tables):
        assert classify("u'free'", "WiFi", tables) == TranslatedEnum("Gratis")
        assert classify("'no'", "WiFi", tables) == TranslatedEnum("Sin Wi-Fi")

    def test_prefixed_key_uses_same_table(self, tables):
        assert classify("free", "attributes.WiFi", tables) == TranslatedEnum("Gratis")

    def test_numeric_code_translated(self, tables):
        assert classify(2, "RestaurantsPriceRange2", tables) == TranslatedEnum("$$")
        assert classify(2.0, "RestaurantsPriceRange2", tables) == TranslatedEnum("$$")

    @pytest.mark.parametrize("value", [True, "True", "true", "TRUE"])
    def test_boolean_true(self, value):
        assert classify(value, "GoodForKids") == BooleanTrue()

    @pytest.mark.parametrize("value", [False, "False", "false"])
    def test_boolean_false(self, value):
        assert classify(value, "GoodForKids") == BooleanFalse()

    def test_nested_object(self):
        payload = {"dinner": True, "lunch": False}
        assert classify(payload, "GoodForMeal") == ComplexObject(payload)

    def test_unknown_token_falls_back_cleaned(self, tables):
        assert classify("u'paid_by_hour'", "WiFi", tables) == RawFallback("paid_by_hour")

    def test_missing_table_falls_back(self):
        assert classify("quiet", "NoiseLevel") == RawFallback("quiet")

    def test_list_value_is_not_object(self):
        result = classify(["a", "b"], "Tags")
        assert isinstance(result, RawFallback)

    @pytest.mark.parametrize("value", [
        None, True, False, 0, 1.5, float("nan"), "", "None", "{", "}", "{}", "{'a': True}",
        "{bad", {"nested": {"deep": 1}}, [], [1, None], "u'x'", "\"quoted\"",
    ])
    def test_always_returns_one_category(self, value):
        result = classify(value, "AnyKey", TranslationTables.default())
        assert result.kind in {
            "absent", "boolean_true", "boolean_false", "flag_set",
            "translated_enum", "complex_object", "raw_fallback",
        }

    def test_repeatable(self, tables):
        raw = "{'lot': True, 'street': True}"
        assert classify(raw, "BusinessParking", tables) == classify(raw, "BusinessParking", tables)


class TestAttributeValue:

    @pytest.mark.parametrize("raw, tag", [
        (None, ValueTag.NULL),
        (True, ValueTag.BOOLEAN),
        (3, ValueTag.NUMBER),
        (3.5, ValueTag.NUMBER),
        ("free", ValueTag.STRING),
        ({"a": 1}, ValueTag.OBJECT),
        ([1, 2], ValueTag.STRING),
    ])
    def test_tags(self, raw, tag):
        assert AttributeValue.of(raw).tag is tag

    def test_bool_is_not_number(self):
        assert AttributeValue.of(False).tag is ValueTag.BOOLEAN


# ============================================================
# DISPLAY HELPERS
# ============================================================

class TestDisplay:

    def test_key_name_from_table(self, tables):
        assert display_key_name("WiFi", tables) == "Wi-Fi"
        assert display_key_name("attributes.WiFi", tables) == "Wi-Fi"

    def test_key_name_fallback_splits_capitals(self):
        assert display_key_name("OutdoorSeating") == "Outdoor Seating"
        assert display_key_name("attributes.RestaurantsPriceRange2") == "Restaurants Price Range2"

    def test_default_tables(self):
        tables = TranslationTables.default()
        assert display_key_name("RestaurantsAttire", tables) == "Dress Code"
        assert classify("u'full_bar'", "Alcohol", tables) == TranslatedEnum("Full Bar")
        assert classify("'very_loud'", "NoiseLevel", tables) == TranslatedEnum("Very Loud")

    def test_tables_are_read_only(self, tables):
        with pytest.raises(TypeError):
            tables.value_display_names["WiFi"]["paid"] = "Paid"

    @pytest.mark.parametrize("category, text", [
        (Absent(), "N/A"),
        (BooleanTrue(), "Yes"),
        (BooleanFalse(), "No"),
        (FlagSet(()), "Unspecified"),
        (FlagSet(("good_for_kids", "casual")), "Good For Kids, Casual"),
        (TranslatedEnum("Full Bar"), "Full Bar"),
        (ComplexObject({"a": True}), "Details"),
        (RawFallback("paid_by_hour"), "paid_by_hour"),
    ])
    def test_render_text(self, category, text):
        assert render_text(category) == text
