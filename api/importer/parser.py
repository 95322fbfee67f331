"""
PropertyFinder XML feed parser.

The feed looks like:

    <list>
      <property>
        <reference_number>NS-1001</reference_number>
        <offering_type>RS</offering_type>
        <property_type>AP</property_type>
        <price><yearly>1,250,000</yearly></price>
        <photo><url>https://...</url><url>https://...</url></photo>
        <agent><id>7</id><name>Jane Doe</name></agent>
        ...
      </property>
    </list>

Tag names are matched case-insensitively and attributes are ignored.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from typing import Any

from pydantic import ValidationError

from properties.schemas import PropertyCreate

PROPERTY_TYPE_MAP: dict[str, str] = {
    "AP": "Apartment",
    "BU": "Bulk Units",
    "BW": "Bungalow",
    "CD": "Compound",
    "DX": "Duplex",
    "FA": "Factory",
    "FM": "Farm",
    "FF": "Full Floor",
    "HA": "Hotel Apartment",
    "HF": "Half Floor",
    "LC": "Labor Camp",
    "LP": "Land/Plot",
    "OF": "Office Space",
    "BC": "Business Centre",
    "PH": "Penthouse",
    "RE": "Retail",
    "RT": "Restaurant",
    "ST": "Storage",
    "TH": "Townhouse",
    "VH": "Villa/House",
    "SA": "Staff Accommodation",
    "WB": "Whole Building",
    "SH": "Shop",
    "SR": "Showroom",
    "CW": "Co-working Space",
    "WH": "Warehouse",
}

DEFAULT_PROPERTY_TYPE_CODE = "AP"

COMMERCIAL_TYPES = frozenset({"OF", "BC", "RE", "RT", "ST", "WB", "SH", "SR", "CW", "WH", "FA", "FF", "HF"})

PRIVATE_AMENITIES_MAP: dict[str, str] = {
    "AC": "Central A/C & Heating",
    "BA": "Balcony",
    "BK": "Built-in Kitchen Appliances",
    "BL": "View of Landmark",
    "BW": "Built-in Wardrobes",
    "CP": "Covered Parking",
    "CS": "Concierge Service",
    "LB": "Lobby in Building",
    "MR": "Maid's Room",
    "MS": "Maid Service",
    "PA": "Pets Allowed",
    "PG": "Private Garden",
    "PJ": "Private Jacuzzi",
    "PP": "Private Pool",
    "PY": "Private Gym",
    "VC": "Vastu-compliant",
    "SE": "Security",
    "SP": "Shared Pool",
    "SS": "Shared Spa",
    "ST": "Study",
    "SY": "Shared Gym",
    "VW": "View of Water",
    "WC": "Walk-in Closet",
    "CO": "Children's Pool",
    "PR": "Children's Play Area",
    "BR": "Barbecue Area",
}

COMMERCIAL_AMENITIES_MAP: dict[str, str] = {
    "CR": "Conference Room",
    "AN": "Available Networked",
    "DN": "Dining in building",
    "LB": "Lobby in Building",
    "SP": "Shared Pool",
    "SY": "Shared Gym",
    "CP": "Covered Parking",
    "VC": "Vastu-compliant",
    "PN": "Pantry",
    "MZ": "Mezzanine",
}

UNKNOWN_REFERENCE = "unknown"

_QUOTES_RE = re.compile(r"[`'\"]")
_SCHEME_RE = re.compile(r"^(https?):/*", re.IGNORECASE)
_NON_DIGITS_RE = re.compile(r"\D")


class FeedParseError(ValueError):
    pass


class RecordError(ValueError):
    """
    A single feed record could not be turned into a property.
    """

    def __init__(self, reference: str, message: str) -> None:
        super().__init__(message)
        self.reference = reference or UNKNOWN_REFERENCE
        self.message = message


def _local(tag: str) -> str:
    # Drop any "{namespace}" prefix.
    return tag.rsplit("}", 1)[-1].lower()


def _child(element: ET.Element, name: str) -> ET.Element | None:
    for child in element:
        if _local(child.tag) == name:
            return child
    return None


def _children(element: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in element if _local(child.tag) == name]


def _text(element: ET.Element | None, name: str | None = None) -> str:
    node = element if name is None or element is None else _child(element, name)
    if node is None or node.text is None:
        return ""
    return " ".join(node.text.split())


def parse_int(raw: str) -> int | None:
    """
    Keep only the digits of the integer part ("1,250,000.00" -> 1250000).

    Returns None when nothing numeric is left ("Studio" -> None).
    """
    integer_part = (raw or "").split(".", 1)[0]
    digits = _NON_DIGITS_RE.sub("", integer_part)
    return int(digits) if digits else None


def fix_image_url(url: str) -> str:
    """
    Repair the URL damage seen in the feed: stray quotes or backticks, a
    corrupted "zoho.nordstern.a/e" host, and schemes missing their slashes.
    """
    clean = _QUOTES_RE.sub("", (url or "").strip())
    if not clean:
        return ""
    clean = clean.replace("zoho.nordstern.a/e", "zoho.nordstern.ae")
    return _SCHEME_RE.sub(lambda m: f"{m.group(1).lower()}://", clean, count=1)


def parse_amenities(raw: str, *, commercial: bool) -> str:
    table = COMMERCIAL_AMENITIES_MAP if commercial else PRIVATE_AMENITIES_MAP
    codes = [code.strip() for code in (raw or "").split(",")]
    return ",".join(table.get(code, code) for code in codes if code)


def parse_feed(xml_text: str) -> list[ET.Element]:
    """
    Parse the document and return its <property> elements.

    Raises FeedParseError when the text is not well-formed XML. A document
    whose root is not <list> holds no properties.
    """
    try:
        root = ET.fromstring((xml_text or "").strip())
    except ET.ParseError as exc:
        raise FeedParseError(f"Invalid XML: {exc}") from exc

    if _local(root.tag) != "list":
        return []
    return _children(root, "property")


def record_reference(element: ET.Element) -> str:
    return _text(element, "reference_number")


def _price(element: ET.Element) -> int:
    price = _child(element, "price")
    if price is None:
        return 0
    yearly = _text(price, "yearly")
    value = parse_int(yearly) if yearly else parse_int(_text(price))
    return value or 0


def _images(element: ET.Element) -> list[str]:
    urls: list[str] = []
    for photo in _children(element, "photo"):
        for node in _children(photo, "url"):
            fixed = fix_image_url(_text(node))
            if fixed:
                urls.append(fixed)
    return urls


def _agent(element: ET.Element) -> list[dict[str, str]] | None:
    agent = _child(element, "agent")
    if agent is None:
        return None
    return [{"id": _text(agent, "id"), "name": _text(agent, "name")}]


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{location}: {err.get('msg', 'invalid value')}" if location else err.get("msg", ""))
    return "; ".join(parts) or "Invalid property record."


def map_record(element: ET.Element) -> dict[str, Any]:
    """
    Convert one <property> element into a validated column dict.

    Raises RecordError for a missing reference or a record that fails
    validation (e.g. no title).
    """
    reference = record_reference(element)
    if not reference:
        raise RecordError(UNKNOWN_REFERENCE, "Missing reference number")

    type_code = _text(element, "property_type").upper() or DEFAULT_PROPERTY_TYPE_CODE
    commercial = type_code in COMMERCIAL_TYPES

    raw_amenities = _text(element, "private_amenities") or _text(element, "commercial_amenities")
    furnished = _text(element, "furnished").lower()
    sub_community = _text(element, "sub_community")
    community = _text(element, "community")
    size = parse_int(_text(element, "size"))

    values: dict[str, Any] = {
        "reference": reference,
        "listing_type": "Rent" if _text(element, "offering_type").upper() == "RR" else "Sale",
        "property_type": PROPERTY_TYPE_MAP.get(type_code, PROPERTY_TYPE_MAP[DEFAULT_PROPERTY_TYPE_CODE]),
        "sub_community": sub_community or None,
        "community": community,
        "region": _text(element, "city") or "Dubai",
        "country": "UAE",
        "agent": _agent(element),
        "price": _price(element),
        "currency": "AED",
        "bedrooms": parse_int(_text(element, "bedroom")),
        "bathrooms": parse_int(_text(element, "bathroom")),
        "property_status": "Ready" if _text(element, "completion_status").lower() == "completed" else "Off Plan",
        "title": _text(element, "title_en"),
        "description": _text(element, "description_en") or None,
        "sqfeet_area": size,
        "sqfeet_builtup": size,
        "amenities": parse_amenities(raw_amenities, commercial=commercial) or None,
        "is_furnished": furnished in ("yes", "partly"),
        "is_fitted": "partly" in furnished,
        "permit": _text(element, "permit_number") or None,
        "images": _images(element),
        "development": _text(element, "property_name") or None,
        "neighbourhood": sub_community or community or None,
    }

    try:
        model = PropertyCreate.model_validate(values)
    except ValidationError as exc:
        raise RecordError(reference, _validation_message(exc)) from exc
    return model.model_dump(mode="json")
