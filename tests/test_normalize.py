"""Tests for locale-aware text normalization."""

import pytest

from listingharvester.collectors.normalize import (
    absolute_url,
    build_listing,
    clean_image_urls,
    derive_total_price,
    extract_area_from_location,
    is_per_area_price,
    normalize_floor,
    normalize_postal_code,
    normalize_property_type,
    normalize_transaction_type,
    parse_bathroom_count,
    parse_price,
    parse_price_per_sqm,
    parse_room_count,
    parse_size,
)
from listingharvester.models.listing import PropertyType, TransactionType

BASE_URL = "https://www.spitogatos.gr"


class TestParsePrice:
    """Test Greek price parsing."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("€ 320.000", 320000),
            ("320.000 €", 320000),
            ("€ 1.250.000", 1250000),
            ("1.234,56", 1235),
            ("100,5", 101),
            ("€ 1,500", 2),
            ("87,500", 88),
            ("850 €/μήνα", 850),
            ("320000", 320000),
        ],
    )
    def test_formats(self, text: str, expected: int):
        """Dots group thousands, commas mark decimals."""
        assert parse_price(text) == expected

    @pytest.mark.parametrize("text", [None, "", "not a price", "€", "Τιμή κατόπιν επικοινωνίας"])
    def test_unparseable_is_none(self, text):
        """Unparseable input gives None instead of raising."""
        assert parse_price(text) is None

    def test_idempotent(self):
        """Parsing the rendered result yields the same number."""
        first = parse_price("€ 245.500")
        assert parse_price(str(first)) == first


class TestParseSize:
    """Test area parsing."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("87,5 m²", 88),
            ("87.5m2", 88),
            ("120 τ.μ.", 120),
            ("95 sqm", 95),
            ("95 sq.m.", 95),
            ("1.200 τ.μ.", 1200),
            ("Εμβαδόν 75 τ.μ. 2ος όροφος", 75),
            ("87", 87),
        ],
    )
    def test_formats(self, text: str, expected: int):
        """Units and both decimal separators are recognized."""
        assert parse_size(text) == expected

    @pytest.mark.parametrize("text", [None, "", "abc", "Floor 3"])
    def test_unparseable_is_none(self, text):
        """A number without a unit is only accepted as the whole text."""
        assert parse_size(text) is None

    def test_idempotent(self):
        """Parsing the rendered result yields the same number."""
        first = parse_size("87,5 m²")
        assert parse_size(str(first)) == first


class TestRoomCounts:
    """Test bedroom and bathroom extraction."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("3 bedrooms", 3),
            ("2 beds", 2),
            ("Υπνοδωμάτια: 2", 2),
            ("2 υπν.", 2),
            ("4", 4),
        ],
    )
    def test_bedrooms(self, text: str, expected: int):
        """Room tokens before or after the number are recognized."""
        assert parse_room_count(text) == expected

    def test_bedrooms_without_number(self):
        """Text without a count gives None."""
        assert parse_room_count("many rooms") is None
        assert parse_room_count(None) is None

    def test_bathrooms(self):
        """Bathroom tokens in both languages."""
        assert parse_bathroom_count("2 bathrooms") == 2
        assert parse_bathroom_count("1 μπάνιο") == 1
        assert parse_bathroom_count("3") == 3
        assert parse_bathroom_count("none") is None


class TestLocation:
    """Test area extraction from location strings."""

    @pytest.mark.parametrize(
        "location, expected",
        [
            ("Kolonaki, Athens", "Kolonaki"),
            ("Glyfada - South", "Glyfada"),
            ("Piraeus", "Piraeus"),
            ("Κηφισιά – Βόρεια Προάστια", "Κηφισιά"),
        ],
    )
    def test_first_segment(self, location: str, expected: str):
        """The first comma or dash delimited segment is the area."""
        assert extract_area_from_location(location) == expected

    def test_empty(self):
        assert extract_area_from_location(None) is None
        assert extract_area_from_location("") is None


class TestPerAreaPrice:
    """Test per-m² price handling."""

    def test_detection(self):
        """Only rates quoted per square meter are flagged."""
        assert is_per_area_price("€ 2,577/sq.m.")
        assert is_per_area_price("3.100 €/m²")
        assert not is_per_area_price("€ 320.000")
        assert not is_per_area_price(None)

    def test_rate_parsing(self):
        """Every separator in a rate is a thousands separator."""
        assert parse_price_per_sqm("€ 2,577/sq.m.") == 2577
        assert parse_price_per_sqm("3.100 €/m²") == 3100
        assert parse_price_per_sqm("€ 320.000") is None

    def test_total(self):
        """Total is rate times size."""
        assert derive_total_price(2577, 85) == 219045
        assert derive_total_price(2577, None) is None
        assert derive_total_price(None, 85) is None


class TestPropertyType:
    """Test property type mapping."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Διαμέρισμα", PropertyType.APARTMENT),
            ("Apartment", PropertyType.APARTMENT),
            ("Μεζονέτα", PropertyType.MAISONETTE),
            ("Penthouse", PropertyType.PENTHOUSE),
            ("Luxury penthouse with view", PropertyType.PENTHOUSE),
            ("Detached house", PropertyType.HOUSE),
            ("Γκαρσονιέρα", PropertyType.STUDIO),
            ("Οικόπεδο", PropertyType.LAND),
            ("Castle", PropertyType.OTHER),
        ],
    )
    def test_mapping(self, text: str, expected: PropertyType):
        """Greek and English keywords map to canonical types."""
        assert normalize_property_type(text) == expected

    def test_empty(self):
        """Empty input is unknown, not OTHER."""
        assert normalize_property_type("") is None
        assert normalize_property_type(None) is None


class TestTransactionType:
    """Test rent/sale detection."""

    def test_rent_keywords(self):
        assert normalize_transaction_type("rent") == TransactionType.RENT
        assert normalize_transaction_type("Ενοικίαση") == TransactionType.RENT
        assert normalize_transaction_type("€ 850/month") == TransactionType.RENT

    def test_default_kept(self):
        """Text without a keyword keeps the default."""
        assert normalize_transaction_type(None, TransactionType.RENT) == TransactionType.RENT
        assert normalize_transaction_type("Kolonaki") == TransactionType.SALE
        assert normalize_transaction_type("sale", TransactionType.RENT) == TransactionType.SALE


class TestFloor:
    """Test floor normalization."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Ισόγειο", "0"),
            ("ground floor", "0"),
            ("Υπόγειο", "-1"),
            ("Ημιυπόγειο", "-0.5"),
            ("3ος", "3"),
            ("2nd floor", "2"),
            ("Floor: 4", "4"),
        ],
    )
    def test_mapping(self, text: str, expected: str):
        assert normalize_floor(text) == expected

    def test_unrecognized_kept(self):
        """Labels without a number are kept as cleaned text."""
        assert normalize_floor("  Penthouse ") == "Penthouse"
        assert normalize_floor(None) is None


class TestPostalCode:
    """Test postal code normalization."""

    def test_valid(self):
        assert normalize_postal_code("104 34") == "10434"
        assert normalize_postal_code("ΤΚ 11526") == "11526"

    def test_invalid(self):
        assert normalize_postal_code("1043") is None
        assert normalize_postal_code(None) is None


class TestUrls:
    """Test URL and image cleanup."""

    def test_absolute_url(self):
        """Relative and protocol-relative hrefs are resolved."""
        assert absolute_url("/aggelies/123", BASE_URL) == "https://www.spitogatos.gr/aggelies/123"
        assert absolute_url("//img.example.gr/a.jpg", BASE_URL) == "https://img.example.gr/a.jpg"
        assert absolute_url("https://www.xe.gr/x", BASE_URL) == "https://www.xe.gr/x"
        assert absolute_url("property/5", "https://en.tospitimou.gr") == (
            "https://en.tospitimou.gr/property/5"
        )
        assert absolute_url(None, BASE_URL) is None

    def test_image_cleanup(self):
        """Decorative images are dropped and duplicates removed."""
        images = clean_image_urls(
            [
                "//cdn.example.gr/a.jpg",
                "/static/logo.png",
                "https://cdn.example.gr/a.jpg",
                "data:image/png;base64,AAAA",
                None,
                "/photos/b.jpg",
            ],
            BASE_URL,
        )
        assert images == [
            "https://cdn.example.gr/a.jpg",
            "https://www.spitogatos.gr/photos/b.jpg",
        ]


class TestBuildListing:
    """Test the shared record construction."""

    def test_full_record(self):
        """Field text becomes typed fields."""
        listing = build_listing(
            {
                "id": "12345",
                "url": "/aggelies/12345",
                "title": "  Διαμέρισμα  85 τ.μ. ",
                "price": "€ 245.000",
                "location": "Kolonaki, Athens",
                "size": "85 τ.μ.",
                "bedrooms": "2 υπν.",
                "bathrooms": "1 μπάνιο",
                "floor": "3ος",
                "property_type": "Διαμέρισμα",
                "agency": "Best Homes",
                "images": ["//cdn.example.gr/1.jpg"],
            },
            base_url=BASE_URL,
        )

        assert listing is not None
        assert listing.source_listing_id == "12345"
        assert listing.source_url == "https://www.spitogatos.gr/aggelies/12345"
        assert listing.title == "Διαμέρισμα 85 τ.μ."
        assert listing.price == 245000
        assert listing.price_text == "€ 245.000"
        assert listing.price_derived is False
        assert listing.area == "Kolonaki"
        assert listing.address == "Kolonaki, Athens"
        assert listing.size_sqm == 85
        assert listing.bedrooms == 2
        assert listing.bathrooms == 1
        assert listing.floor == "3"
        assert listing.property_type == PropertyType.APARTMENT
        assert listing.transaction_type == TransactionType.SALE
        assert listing.agency_name == "Best Homes"
        assert listing.images == ["https://cdn.example.gr/1.jpg"]
        assert listing.raw_data["price_text"] == "€ 245.000"

    def test_missing_id_or_url(self):
        """Records without an id or URL are dropped."""
        assert build_listing({"url": "/aggelies/1"}, base_url=BASE_URL) is None
        assert build_listing({"id": "1"}, base_url=BASE_URL) is None

    def test_per_area_price_derived(self):
        """A per-m² rate is multiplied by the size and flagged."""
        listing = build_listing(
            {"id": "9", "url": "/property/9", "price": "€ 2,577/sq.m.", "size": "85 m²"},
            base_url="https://en.tospitimou.gr",
        )
        assert listing.price == 219045
        assert listing.price_derived is True
        assert listing.price_text == "€ 2,577/sq.m."

    def test_per_area_price_without_size(self):
        """Without a size the total stays unknown."""
        listing = build_listing(
            {"id": "9", "url": "/property/9", "price": "€ 2,577/sq.m."},
            base_url="https://en.tospitimou.gr",
        )
        assert listing.price is None
        assert listing.price_derived is False

    def test_numeric_price_value(self):
        """Already numeric prices are rounded, not re-parsed."""
        listing = build_listing(
            {"id": "1", "url": "/property/d/1", "price_value": 320000.4},
            base_url="https://www.xe.gr",
        )
        assert listing.price == 320000

    def test_transaction_override(self):
        """Rent text overrides the search's transaction type."""
        listing = build_listing(
            {"id": "1", "url": "/x/1", "transaction": "rent"},
            base_url=BASE_URL,
            transaction_type=TransactionType.SALE,
        )
        assert listing.transaction_type == TransactionType.RENT

    def test_invalid_coordinates_ignored(self):
        listing = build_listing(
            {"id": "1", "url": "/x/1", "latitude": "abc", "longitude": "23.7"},
            base_url=BASE_URL,
        )
        assert listing.latitude is None
        assert listing.longitude == 23.7

    def test_same_fields_same_record(self):
        """Identical field text always yields an identical record."""
        fields = {"id": "7", "url": "/aggelies/7", "price": "€ 99.000", "size": "45 m²"}
        assert build_listing(fields, base_url=BASE_URL) == build_listing(fields, base_url=BASE_URL)

    def test_to_record_is_json_compatible(self):
        listing = build_listing(
            {"id": "7", "url": "/aggelies/7", "property_type": "flat"},
            base_url=BASE_URL,
        )
        record = listing.to_record()
        assert record["property_type"] == "APARTMENT"
        assert record["transaction_type"] == "sale"
