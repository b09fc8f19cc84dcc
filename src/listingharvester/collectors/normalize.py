"""Locale-aware text normalizers shared by both extraction paths.

Greek portals format numbers the continental way: ``.`` groups thousands
and ``,`` marks decimals ("€ 320.000", "87,5 τ.μ."). Per-m² rates are
whole euros, so their separators are always grouping.

Every parser is total: unparseable input gives ``None``, never an
exception. ``build_listing`` is the single place where extracted field
text becomes a ``RawListing``, so the same source text normalizes to the
same record whichever path extracted it.
"""

import logging
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional
from urllib.parse import urljoin

from pydantic import ValidationError

from ..models.listing import PropertyType, RawListing, TransactionType

logger = logging.getLogger(__name__)

CURRENCY_PATTERN = re.compile(r"[€$£]|\bEUR\b|\beuros?\b", re.IGNORECASE)
NUMBER_RUN_PATTERN = re.compile(r"\d[\d.,]*")
AREA_UNIT = r"(?:m²|m2|τ\.?\s?μ\.?|sq\.?\s?m\.?|sqm)"
SIZE_PATTERN = re.compile(
    r"(\d{1,3}(?:\.\d{3})+(?![\d,])|\d+(?:[.,]\d+)?)\s*" + AREA_UNIT,
    re.IGNORECASE,
)
BARE_NUMBER_PATTERN = re.compile(r"\s*(\d+(?:[.,]\d+)?)\s*")
ROOM_TOKEN = r"(?:bedrooms?|beds?|bdr|rooms?|υπν\w*|δωμ\w*|υ/δ)"
ROOM_AFTER_PATTERN = re.compile(r"(\d+)\s*" + ROOM_TOKEN, re.IGNORECASE)
ROOM_BEFORE_PATTERN = re.compile(ROOM_TOKEN + r"\s*:?\s*(\d+)", re.IGNORECASE)
BATH_PATTERN = re.compile(r"(\d+)\s*(?:bathrooms?|baths?|wc|μπάνι\w*|λουτρ\w*)", re.IGNORECASE)
PER_AREA_PATTERN = re.compile(
    r"([\d][\d.,\s]*)\s*(?:€\s*)?/\s*" + AREA_UNIT,
    re.IGNORECASE,
)
LOCATION_SPLIT_PATTERN = re.compile(r"[,\-–]")
WHITESPACE_PATTERN = re.compile(r"\s+")

# Greek and English keywords per canonical type. Longer keys are checked
# first so "penthouse" wins over "house".
PROPERTY_TYPE_KEYWORDS: dict[str, PropertyType] = {
    "διαμέρισμα": PropertyType.APARTMENT,
    "διαμερισμα": PropertyType.APARTMENT,
    "apartment": PropertyType.APARTMENT,
    "flat": PropertyType.APARTMENT,
    "μονοκατοικία": PropertyType.HOUSE,
    "μονοκατοικια": PropertyType.HOUSE,
    "house": PropertyType.HOUSE,
    "μεζονέτα": PropertyType.MAISONETTE,
    "μεζονετα": PropertyType.MAISONETTE,
    "maisonette": PropertyType.MAISONETTE,
    "στούντιο": PropertyType.STUDIO,
    "στουντιο": PropertyType.STUDIO,
    "γκαρσονιέρα": PropertyType.STUDIO,
    "studio": PropertyType.STUDIO,
    "loft": PropertyType.LOFT,
    "ρετιρέ": PropertyType.PENTHOUSE,
    "ρετιρε": PropertyType.PENTHOUSE,
    "penthouse": PropertyType.PENTHOUSE,
    "βίλα": PropertyType.VILLA,
    "βιλα": PropertyType.VILLA,
    "villa": PropertyType.VILLA,
    "οικόπεδο": PropertyType.LAND,
    "οικοπεδο": PropertyType.LAND,
    "αγροτεμάχιο": PropertyType.LAND,
    "land": PropertyType.LAND,
    "plot": PropertyType.LAND,
    "επαγγελματικό": PropertyType.COMMERCIAL,
    "επαγγελματικο": PropertyType.COMMERCIAL,
    "κατάστημα": PropertyType.COMMERCIAL,
    "καταστημα": PropertyType.COMMERCIAL,
    "commercial": PropertyType.COMMERCIAL,
    "office": PropertyType.COMMERCIAL,
    "αποθήκη": PropertyType.WAREHOUSE,
    "αποθηκη": PropertyType.WAREHOUSE,
    "warehouse": PropertyType.WAREHOUSE,
    "θέση στάθμευσης": PropertyType.PARKING,
    "πάρκινγκ": PropertyType.PARKING,
    "παρκινγκ": PropertyType.PARKING,
    "parking": PropertyType.PARKING,
}
_KEYWORDS_BY_LENGTH = sorted(PROPERTY_TYPE_KEYWORDS.items(), key=lambda kv: -len(kv[0]))

FLOOR_WORDS = {
    "ισόγειο": "0",
    "ισογειο": "0",
    "ground": "0",
    "ground floor": "0",
    "υπόγειο": "-1",
    "υπογειο": "-1",
    "basement": "-1",
    "ημιυπόγειο": "-0.5",
    "ημιυπογειο": "-0.5",
    "semi-basement": "-0.5",
    "ημιισόγειο": "0.5",
    "ημιισογειο": "0.5",
    "mezzanine": "0.5",
}
# "ημιυπόγειο" contains "υπόγειο", so longer words go first
_FLOOR_WORDS_BY_LENGTH = sorted(FLOOR_WORDS.items(), key=lambda kv: -len(kv[0]))

IMAGE_URL_BLOCKLIST = ("placeholder", "logo", "avatar", "icon", "data:image", "blank.gif")


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _to_decimal(number: str) -> Optional[Decimal]:
    try:
        return Decimal(number)
    except InvalidOperation:
        return None


def clean_text(text: Optional[str]) -> Optional[str]:
    """Collapse whitespace; empty strings become None."""
    if not text:
        return None
    cleaned = WHITESPACE_PATTERN.sub(" ", str(text)).strip()
    return cleaned or None


def parse_price(text: Optional[str]) -> Optional[int]:
    """Parse a Greek-formatted price into whole euros.

    ``.`` is a thousands separator and ``,`` a decimal separator. The
    leading numeric run is used and rounded half up.

    Examples:
        "€ 320.000" -> 320000
        "320.000 €" -> 320000
        "1.234,56"  -> 1235
        "not a price" -> None
    """
    if not text:
        return None

    cleaned = CURRENCY_PATTERN.sub("", str(text))
    cleaned = WHITESPACE_PATTERN.sub("", cleaned)

    match = NUMBER_RUN_PATTERN.search(cleaned)
    if not match:
        return None

    run = match.group(0).rstrip(".,")
    number = run.replace(".", "").replace(",", ".")
    # Several commas would leave several dots; keep the first decimal part
    leading = re.match(r"\d+(?:\.\d+)?", number)
    number = leading.group(0) if leading else ""

    value = _to_decimal(number)
    return _round_half_up(value) if value is not None else None


def parse_size(text: Optional[str]) -> Optional[int]:
    """Parse an area in square meters, rounded half up.

    Accepts ``m²``, ``m2``, ``sqm``/``sq.m`` and the Greek ``τ.μ.`` units,
    with either ``,`` or ``.`` as decimal separator. A dot followed by
    exactly three digits ("1.200 τ.μ.") is read as thousands grouping. A
    bare number with no unit is accepted only when it is the whole text.

    Examples:
        "87,5 m²" -> 88
        "87.5m2"  -> 88
    """
    if not text:
        return None

    text = str(text)
    match = SIZE_PATTERN.search(text)
    if match:
        number = match.group(1)
        if re.fullmatch(r"\d{1,3}(?:\.\d{3})+", number):
            number = number.replace(".", "")
        else:
            number = number.replace(",", ".")
    else:
        bare = BARE_NUMBER_PATTERN.fullmatch(text)
        if not bare:
            return None
        number = bare.group(1).replace(",", ".")

    value = _to_decimal(number)
    return _round_half_up(value) if value is not None else None


def parse_room_count(text: Optional[str]) -> Optional[int]:
    """Extract the integer next to a room token ("3 bedrooms", "Υπνοδωμάτια: 2").

    A text that is only an integer is accepted as-is.
    """
    if not text:
        return None

    text = str(text)
    for pattern in (ROOM_AFTER_PATTERN, ROOM_BEFORE_PATTERN):
        match = pattern.search(text)
        if match:
            return int(match.group(1))

    bare = re.fullmatch(r"\s*(\d+)\s*", text)
    return int(bare.group(1)) if bare else None


def parse_bathroom_count(text: Optional[str]) -> Optional[int]:
    """Extract a bathroom count ("2 bathrooms", "1 μπάνιο" or a bare integer)."""
    if not text:
        return None
    text = str(text)
    match = BATH_PATTERN.search(text)
    if match:
        return int(match.group(1))
    bare = re.fullmatch(r"\s*(\d+)\s*", text)
    return int(bare.group(1)) if bare else None


def extract_area_from_location(location: Optional[str]) -> Optional[str]:
    """Return the first comma/dash delimited segment of a location string.

    Examples:
        "Kolonaki, Athens" -> "Kolonaki"
        "Glyfada - South" -> "Glyfada"
        "Piraeus" -> "Piraeus"
    """
    if not location:
        return None
    first = LOCATION_SPLIT_PATTERN.split(str(location), maxsplit=1)[0]
    return clean_text(first)


def is_per_area_price(text: Optional[str]) -> bool:
    """True when a price text quotes a rate per square meter."""
    return bool(text and PER_AREA_PATTERN.search(str(text)))


def parse_price_per_sqm(text: Optional[str]) -> Optional[int]:
    """Parse a per-m² rate such as "€ 2,577/sq.m.".

    Rates are whole euros, so every separator is treated as grouping.
    Returns None when the text is not a per-area quote.
    """
    if not text:
        return None
    match = PER_AREA_PATTERN.search(str(text))
    if not match:
        return None
    digits = re.sub(r"[\s.,]", "", match.group(1))
    return int(digits) if digits.isdigit() else None


def derive_total_price(price_per_sqm: Optional[int], size_sqm: Optional[int]) -> Optional[int]:
    """Approximate a total price from a per-m² rate and the size."""
    if not price_per_sqm or not size_sqm:
        return None
    return _round_half_up(Decimal(price_per_sqm) * Decimal(size_sqm))


def normalize_property_type(text: Optional[str]) -> Optional[PropertyType]:
    """Map free-text property type (Greek or English) to a PropertyType.

    Returns None for empty input and PropertyType.OTHER when nothing matches.
    """
    normalized = clean_text(text)
    if not normalized:
        return None
    normalized = normalized.lower().replace("-", " ")

    exact = PROPERTY_TYPE_KEYWORDS.get(normalized)
    if exact:
        return exact
    for keyword, property_type in _KEYWORDS_BY_LENGTH:
        if keyword in normalized:
            return property_type
    return PropertyType.OTHER


def normalize_transaction_type(
    text: Optional[str], default: TransactionType = TransactionType.SALE
) -> TransactionType:
    """Detect rent listings from free text; anything else keeps the default."""
    if not text:
        return default
    lowered = str(text).lower()
    if any(k in lowered for k in ("ενοικ", "rent", "μισθ", "/month", "ανά μήνα")):
        return TransactionType.RENT
    if any(k in lowered for k in ("πώληση", "πωληση", "for sale", "sale")):
        return TransactionType.SALE
    return default


def normalize_floor(text: Optional[str]) -> Optional[str]:
    """Normalize a floor label to a numeric string ("Ισόγειο" -> "0", "3ος" -> "3")."""
    cleaned = clean_text(text)
    if not cleaned:
        return None
    lowered = cleaned.lower()
    if lowered in FLOOR_WORDS:
        return FLOOR_WORDS[lowered]
    for word, value in _FLOOR_WORDS_BY_LENGTH:
        if word in lowered:
            return value
    match = re.search(r"-?\d+", lowered)
    return match.group(0) if match else cleaned


def normalize_postal_code(text: Optional[str]) -> Optional[str]:
    """Return a 5-digit Greek postal code ("104 34" -> "10434") or None."""
    if not text:
        return None
    digits = re.sub(r"\D", "", str(text))
    return digits if len(digits) == 5 else None


def absolute_url(href: Optional[str], base_url: str) -> Optional[str]:
    """Resolve protocol-relative and relative hrefs against a base URL."""
    if not href:
        return None
    href = href.strip()
    if href.startswith("//"):
        return "https:" + href
    if href.startswith(("http://", "https://")):
        return href
    return urljoin(base_url.rstrip("/") + "/", href)


def clean_image_urls(urls: Iterable[Optional[str]], base_url: str) -> list[str]:
    """Absolutize, filter out decorative images and dedupe preserving order."""
    images: list[str] = []
    for url in urls:
        if not url:
            continue
        if any(blocked in url for blocked in IMAGE_URL_BLOCKLIST):
            continue
        resolved = absolute_url(url, base_url)
        if resolved and resolved not in images:
            images.append(resolved)
    return images


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def build_listing(
    fields: Mapping[str, Any],
    *,
    base_url: str,
    transaction_type: TransactionType = TransactionType.SALE,
    raw_data: Optional[dict[str, Any]] = None,
) -> Optional[RawListing]:
    """Turn extracted field text into a RawListing.

    Both the HTTP and the browser path call this with the same field
    names, so identical text always yields an identical record.

    Recognized keys: ``id``, ``url``, ``title``, ``price`` (text),
    ``price_value`` (already numeric, e.g. from JSON-LD), ``location``,
    ``area``, ``municipality``, ``postal_code``, ``size``, ``bedrooms``,
    ``bathrooms``, ``floor``, ``property_type``, ``agency``, ``images``,
    ``latitude``, ``longitude`` and ``transaction`` (free text such as a
    URL slug; overrides ``transaction_type`` only when it says rent/sale).

    Per-area price quotes are multiplied by the size and flagged with
    ``price_derived``; without a size they leave ``price`` empty.

    Returns:
        RawListing, or None when the ID or URL is missing or invalid
    """
    listing_id = clean_text(str(fields.get("id") or ""))
    url = absolute_url(clean_text(fields.get("url")), base_url)
    if not listing_id or not url:
        logger.debug(f"Skipping record without id/url: {dict(fields)!r:.200}")
        return None

    price_text = clean_text(fields.get("price"))
    size_text = clean_text(fields.get("size"))
    size_sqm = parse_size(size_text)

    price_derived = False
    if fields.get("price_value") not in (None, ""):
        price_value = _to_float(fields.get("price_value"))
        price = _round_half_up(Decimal(str(price_value))) if price_value is not None else None
    elif is_per_area_price(price_text):
        price = derive_total_price(parse_price_per_sqm(price_text), size_sqm)
        price_derived = price is not None
    else:
        price = parse_price(price_text)

    location = clean_text(fields.get("location"))
    area = clean_text(fields.get("area")) or extract_area_from_location(location)
    property_type_text = clean_text(fields.get("property_type"))

    bedrooms_text = fields.get("bedrooms")
    bathrooms_text = fields.get("bathrooms")

    record_raw = dict(raw_data or {})
    record_raw.setdefault("price_text", price_text)
    record_raw.setdefault("size_text", size_text)
    record_raw.setdefault("location", location)
    if property_type_text:
        record_raw.setdefault("property_type_text", property_type_text)

    try:
        return RawListing(
            source_listing_id=listing_id,
            source_url=url,
            title=clean_text(fields.get("title")),
            price=price if price is None or price >= 0 else None,
            price_text=price_text,
            price_derived=price_derived,
            property_type=normalize_property_type(property_type_text),
            transaction_type=normalize_transaction_type(
                fields.get("transaction"), default=transaction_type
            ),
            address=location,
            area=area,
            municipality=clean_text(fields.get("municipality")),
            postal_code=normalize_postal_code(fields.get("postal_code")),
            latitude=_to_float(fields.get("latitude")),
            longitude=_to_float(fields.get("longitude")),
            size_sqm=size_sqm,
            bedrooms=parse_room_count(str(bedrooms_text)) if bedrooms_text else None,
            bathrooms=parse_bathroom_count(str(bathrooms_text)) if bathrooms_text else None,
            floor=normalize_floor(fields.get("floor")),
            agency_name=clean_text(fields.get("agency")),
            images=clean_image_urls(fields.get("images") or [], base_url),
            raw_data=record_raw,
        )
    except ValidationError as e:
        logger.warning(f"Dropping listing {listing_id}: {e.error_count()} invalid field(s)")
        return None
