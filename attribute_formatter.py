#!/usr/bin/env python3

import json
import re
import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)

ATTRIBUTE_PREFIX = "attributes."


class ValueTag(str, Enum):
    NULL = "null"
    BOOLEAN = "boolean"
    STRING = "string"
    NUMBER = "number"
    OBJECT = "object"


@dataclass(frozen=True)
class AttributeValue:
    """A raw business attribute value with an explicit type tag."""
    tag: ValueTag
    raw: Any = None

    @classmethod
    def of(cls, raw: Any) -> "AttributeValue":
        """Tag a decoded JSON value. Arrays and unknown types are carried as strings."""
        if raw is None:
            return cls(ValueTag.NULL)
        if isinstance(raw, bool):
            return cls(ValueTag.BOOLEAN, raw)
        if isinstance(raw, (int, float)):
            return cls(ValueTag.NUMBER, raw)
        if isinstance(raw, str):
            return cls(ValueTag.STRING, raw)
        if isinstance(raw, dict):
            return cls(ValueTag.OBJECT, raw)
        if isinstance(raw, (list, tuple)):
            return cls(ValueTag.STRING, ",".join(_to_text(AttributeValue.of(item)) for item in raw))
        return cls(ValueTag.STRING, str(raw))


# Display categories. Every classified value is exactly one of these.

@dataclass(frozen=True)
class Absent:
    kind = "absent"


@dataclass(frozen=True)
class BooleanTrue:
    kind = "boolean_true"


@dataclass(frozen=True)
class BooleanFalse:
    kind = "boolean_false"


@dataclass(frozen=True)
class FlagSet:
    """Active flag names of a flag-object; empty means unspecified."""
    flags: Tuple[str, ...] = ()
    kind = "flag_set"

    @property
    def is_unspecified(self) -> bool:
        return not self.flags


@dataclass(frozen=True)
class TranslatedEnum:
    text: str
    kind = "translated_enum"


@dataclass(frozen=True)
class ComplexObject:
    """Nested attribute object, shown only in a drill-down view."""
    payload: Any
    kind = "complex_object"


@dataclass(frozen=True)
class RawFallback:
    text: str
    kind = "raw_fallback"


DisplayCategory = Union[Absent, BooleanTrue, BooleanFalse, FlagSet, TranslatedEnum, ComplexObject, RawFallback]


def _freeze(mapping: Mapping) -> Mapping:
    return MappingProxyType({key: (_freeze(value) if isinstance(value, Mapping) else value)
                             for key, value in mapping.items()})


@dataclass(frozen=True)
class TranslationTables:
    """
    Read-only display vocabulary for attribute keys and values.

    key_display_names maps an attribute key to its human label.
    value_display_names maps an attribute key to a table of raw token -> label.
    """
    key_display_names: Mapping[str, str] = field(default_factory=dict)
    value_display_names: Mapping[str, Mapping[str, str]] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "key_display_names", _freeze(self.key_display_names))
        object.__setattr__(self, "value_display_names", _freeze(self.value_display_names))

    def key_name(self, key: str) -> Optional[str]:
        return self.key_display_names.get(key, self.key_display_names.get(_bare_key(key)))

    def value_name(self, key: str, token: str) -> Optional[str]:
        table = self.value_display_names.get(key)
        if table is None:
            table = self.value_display_names.get(_bare_key(key), {})
        return table.get(token)

    @classmethod
    def default(cls) -> "TranslationTables":
        """Restaurant attribute vocabulary used by the dashboard."""
        return cls(key_display_names=DEFAULT_KEY_NAMES, value_display_names=DEFAULT_VALUE_NAMES)


DEFAULT_KEY_NAMES = {
    'WiFi': 'Wi-Fi',
    'NoiseLevel': 'Noise Level',
    'RestaurantsPriceRange2': 'Price Range',
    'Alcohol': 'Alcohol',
    'RestaurantsAttire': 'Dress Code',
    'Ambience': 'Ambience',
    'GoodForMeal': 'Good For',
    'BusinessParking': 'Parking',
    'GoodForKids': 'Good for Kids',
    'RestaurantsGoodForGroups': 'Good for Groups',
    'RestaurantsTakeOut': 'Take-out',
    'RestaurantsDelivery': 'Delivery',
    'RestaurantsReservations': 'Takes Reservations',
    'RestaurantsTableService': 'Table Service',
    'OutdoorSeating': 'Outdoor Seating',
    'BusinessAcceptsCreditCards': 'Accepts Credit Cards',
    'HasTV': 'Has TV',
    'Caters': 'Catering',
    'BikeParking': 'Bike Parking',
    'WheelchairAccessible': 'Wheelchair Accessible',
    'DogsAllowed': 'Dogs Allowed',
    'HappyHour': 'Happy Hour',
    'Smoking': 'Smoking',
    'BYOBCorkage': 'BYOB Corkage',
    'AgesAllowed': 'Ages Allowed',
}

DEFAULT_VALUE_NAMES = {
    'WiFi': {'free': 'Free', 'no': 'No Wi-Fi', 'paid': 'Paid'},
    'NoiseLevel': {'quiet': 'Quiet', 'average': 'Average', 'loud': 'Loud', 'very_loud': 'Very Loud'},
    'RestaurantsPriceRange2': {
        '1': '$ (Inexpensive)',
        '2': '$$ (Moderate)',
        '3': '$$$ (Pricey)',
        '4': '$$$$ (Ultra High-End)',
    },
    'Alcohol': {'none': 'No Alcohol', 'beer_and_wine': 'Beer & Wine', 'full_bar': 'Full Bar'},
    'RestaurantsAttire': {'casual': 'Casual', 'dressy': 'Dressy', 'formal': 'Formal'},
    'Smoking': {'no': 'No', 'outdoor': 'Outdoor Area Only', 'yes': 'Yes'},
    'BYOBCorkage': {'no': 'No', 'yes_free': 'Yes, Free', 'yes_corkage': 'Yes, Corkage Fee'},
    'AgesAllowed': {'allages': 'All Ages', '18plus': '18+', '19plus': '19+', '21plus': '21+'},
}


def _bare_key(key: str) -> str:
    return key[len(ATTRIBUTE_PREFIX):] if key.startswith(ATTRIBUTE_PREFIX) else key


def _to_text(value: AttributeValue) -> str:
    if value.tag is ValueTag.NULL:
        return ""
    if value.tag is ValueTag.BOOLEAN:
        return "true" if value.raw else "false"
    if value.tag is ValueTag.NUMBER:
        # 2.0 renders as "2" so numeric codes match their translation tokens
        if isinstance(value.raw, float) and value.raw.is_integer():
            return str(int(value.raw))
        return str(value.raw)
    if value.tag is ValueTag.OBJECT:
        return json.dumps(value.raw, sort_keys=True, default=str)
    return value.raw


def parse_legacy_flag_string(text: str) -> Optional[Dict[str, Any]]:
    """
    Parse a Python-literal style flag string such as "{'casual': True}".

    Single quotes become double quotes and the barewords True, False and
    None become their JSON spellings before decoding. Returns None when the
    text cannot be decoded or does not describe an object.
    """
    converted = text.replace("'", '"')
    converted = re.sub(r'\bTrue\b', 'true', converted)
    converted = re.sub(r'\bFalse\b', 'false', converted)
    converted = re.sub(r'\bNone\b', 'null', converted)

    try:
        parsed = json.loads(converted)
    except (ValueError, RecursionError):
        return None

    if not isinstance(parsed, dict):
        return None
    return parsed


def classify(value: Any, key: str, translations: Optional[TranslationTables] = None) -> DisplayCategory:
    """
    Classify an attribute value into its display category.

    Rules are checked in order and the first match wins:
    absent, flag-object string, nested object, boolean, translated enum,
    raw fallback.

    Args:
        value: Raw decoded value or an AttributeValue
        key: Attribute key, selects the translation table
        translations: Display vocabulary; empty when omitted

    Returns:
        One DisplayCategory variant
    """
    if translations is None:
        translations = TranslationTables()

    attr = value if isinstance(value, AttributeValue) else AttributeValue.of(value)

    if attr.tag is ValueTag.NULL or (attr.tag is ValueTag.STRING and attr.raw == "None"):
        return Absent()

    if attr.tag is ValueTag.STRING:
        stripped = attr.raw.strip()
        if stripped.startswith("{") and stripped.endswith("}"):
            parsed = parse_legacy_flag_string(attr.raw)
            if parsed is None:
                logger.warning(f"Unparseable flag string for attribute {key}: {attr.raw!r}")
                return RawFallback(attr.raw)
            return FlagSet(tuple(name for name, flag in parsed.items() if flag is True))

    if attr.tag is ValueTag.OBJECT:
        return ComplexObject(attr.raw)

    text = _to_text(attr)
    if text.lower() == "true":
        return BooleanTrue()
    if text.lower() == "false":
        return BooleanFalse()

    cleaned = text
    for token in ("u'", "'", 'u"', '"'):
        cleaned = cleaned.replace(token, "")

    translated = translations.value_name(key, cleaned)
    if translated is not None:
        return TranslatedEnum(translated)

    return RawFallback(cleaned)


def _split_capitals(name: str) -> str:
    words = re.sub(r'(?<!^)(?=[A-Z])', ' ', name.replace("_", " ")).split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


def display_key_name(key: str, translations: Optional[TranslationTables] = None) -> str:
    """Human label for an attribute key, e.g. "OutdoorSeating" -> "Outdoor Seating"."""
    if translations is not None:
        name = translations.key_name(key)
        if name is not None:
            return name
    return _split_capitals(_bare_key(key))


def render_text(category: DisplayCategory) -> str:
    """Plain-text rendering of a display category for tables and exports."""
    if isinstance(category, Absent):
        return "N/A"
    if isinstance(category, BooleanTrue):
        return "Yes"
    if isinstance(category, BooleanFalse):
        return "No"
    if isinstance(category, FlagSet):
        if category.is_unspecified:
            return "Unspecified"
        return ", ".join(_split_capitals(flag) for flag in category.flags)
    if isinstance(category, TranslatedEnum):
        return category.text
    if isinstance(category, ComplexObject):
        return "Details"
    if isinstance(category, RawFallback):
        return category.text
    raise TypeError(f"Unknown display category: {category!r}")
