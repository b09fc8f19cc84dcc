"""Tests for search results page parsing."""

import json

from listingharvester.collectors.html import (
    extract_listing_id,
    parse_search_page,
    split_tospitimou_slug,
)
from listingharvester.models.listing import PropertyType, SearchFilters, TransactionType
from listingharvester.models.source import SourceConfig

XE_JSON_LD = {
    "@context": "https://schema.org",
    "@type": "ItemList",
    "itemListElement": [
        {
            "@type": "ListItem",
            "position": 1,
            "item": {
                "@type": "Apartment",
                "name": "Apartment 85 m²",
                "url": "https://www.xe.gr/en/property/d/111/apartment-kolonaki",
                "floorSize": {"@type": "QuantitativeValue", "value": 85},
                "numberOfRooms": 2,
                "address": {
                    "streetAddress": "Kolonaki, Athens",
                    "addressLocality": "Kolonaki",
                    "postalCode": "10673",
                },
                "offers": {"@type": "Offer", "price": 250000, "priceCurrency": "EUR"},
                "image": ["https://img.xe.gr/1.jpg"],
            },
        },
        {
            "@type": "ListItem",
            "position": 2,
            "item": {
                "@type": "House",
                "name": "Detached house",
                "url": "https://www.xe.gr/en/property/d/222/house-kifisia",
                "offers": {"@type": "Offer", "price": "450000"},
            },
        },
    ],
}


def xe_page(json_ld: object, body: str = "") -> str:
    return (
        "<html><head>"
        f'<script type="application/ld+json">{json.dumps(json_ld)}</script>'
        f"</head><body>{body}</body></html>"
    )


TOSPITIMOU_PAGE = """
<html><body>
<div class="search-result" id="result-row_5551"
     data-targeturl="/sale-apartment-flat-Kolonaki/property/5551">
  <h2 class="searchResultsH2">
    <a href="/sale-apartment-flat-Kolonaki/property/5551">VIP Apartment 85 sq.m.</a>
  </h2>
  <div class="price">€ 2,577/sq.m.</div>
  <ul><li>85 m²</li><li>2 bedrooms</li><li>3rd floor</li></ul>
  <img src="https://www.spitogatos.gr/photos/5551.jpg">
</div>
<div class="search-result" id="result-row_7"
     data-targeturl="/rent-studio-Pagrati/property/7">
  <h2 class="searchResultsH2"><a href="/rent-studio-Pagrati/property/7">Studio</a></h2>
  <div class="price">€ 650/month</div>
  <ul><li>32 m²</li></ul>
</div>
<div class="pagination"><a class="next" href="?p=2">›</a></div>
</body></html>
"""

SPITOGATOS_LINKS_PAGE = """
<html><body><main>
  <div class="result">
    <div class="inner"><a href="/aggelies/101">Διαμέρισμα 70 τ.μ.</a></div>
    <span>€ 180.000</span><span>70 τ.μ.</span><span>2 υπν.</span>
  </div>
  <div class="result">
    <div class="inner"><a href="/aggelies/102">Μεζονέτα 120 τ.μ.</a></div>
    <span>€ 410.000</span>
  </div>
  <div class="result">
    <div class="inner"><a href="/aggelies/101">duplicate link</a></div>
  </div>
  <a href="/search?page=2">search</a>
</main></body></html>
"""


class TestExtractListingId:
    """Test detail URL id extraction."""

    def test_source_patterns(self, spitogatos: SourceConfig, xe_gr: SourceConfig):
        assert extract_listing_id("/aggelies/123", spitogatos) == "123"
        assert extract_listing_id("/listing/77", spitogatos) == "77"
        assert extract_listing_id("https://www.xe.gr/en/property/d/555/x", xe_gr) == "555"

    def test_no_match(self, spitogatos: SourceConfig):
        assert extract_listing_id("/about", spitogatos) is None
        assert extract_listing_id(None, spitogatos) is None


class TestTospitimouSlug:
    """Test detail slug splitting."""

    def test_known_type(self):
        assert split_tospitimou_slug("/sale-apartment-flat-Kolonaki/property/5551") == (
            "sale",
            "apartment flat",
            "Kolonaki",
        )

    def test_short_type(self):
        assert split_tospitimou_slug("/rent-studio-Pagrati/property/7") == ("rent", "studio", "Pagrati")

    def test_no_slug(self):
        assert split_tospitimou_slug("/property/7") == (None, None, None)


class TestJsonLd:
    """Test JSON-LD extraction."""

    def test_item_list(self, xe_gr: SourceConfig):
        """ItemList entries become listings with numeric prices."""
        result = parse_search_page(xe_page(XE_JSON_LD), xe_gr, SearchFilters())

        assert [item.source_listing_id for item in result.listings] == ["111", "222"]
        first, second = result.listings
        assert first.price == 250000
        assert first.size_sqm == 85
        assert first.bedrooms == 2
        assert first.area == "Kolonaki"
        assert first.postal_code == "10673"
        assert first.property_type == PropertyType.APARTMENT
        assert first.images == ["https://img.xe.gr/1.jpg"]
        assert first.raw_data["extraction"] == "json_ld"
        assert second.price == 450000
        assert second.property_type == PropertyType.HOUSE

    def test_preferred_over_cards(self, xe_gr: SourceConfig):
        """Cards are ignored when JSON-LD yields listings."""
        body = '<div data-property-id="999"><a href="/en/property/d/999/x">Card</a></div>'
        result = parse_search_page(xe_page(XE_JSON_LD, body), xe_gr, SearchFilters())
        assert "999" not in [item.source_listing_id for item in result.listings]

    def test_client_side_price_filter(self, xe_gr: SourceConfig):
        """XE.gr results are filtered by price after parsing."""
        result = parse_search_page(xe_page(XE_JSON_LD), xe_gr, SearchFilters(max_price=300000))
        assert [item.source_listing_id for item in result.listings] == ["111"]

    def test_graph_with_offer(self, xe_gr: SourceConfig):
        """Offers wrapping an itemOffered are unwrapped."""
        data = {
            "@graph": [
                {"@type": "WebPage", "name": "Search"},
                {
                    "@type": "Offer",
                    "url": "https://www.xe.gr/en/property/d/333/studio",
                    "price": "€ 99.000",
                    "itemOffered": {"@type": "Residence", "name": "Studio"},
                },
            ]
        }
        result = parse_search_page(xe_page(data), xe_gr, SearchFilters())

        assert len(result.listings) == 1
        assert result.listings[0].source_listing_id == "333"
        assert result.listings[0].price == 99000

    def test_address_list(self, xe_gr: SourceConfig):
        """An address given as an array uses its first entry."""
        data = {
            "@type": "ItemList",
            "itemListElement": [
                {
                    "@type": "Apartment",
                    "url": "https://www.xe.gr/en/property/d/111/apartment-kolonaki",
                    "address": {"addressLocality": "Kolonaki"},
                },
                {
                    "@type": "Apartment",
                    "url": "https://www.xe.gr/en/property/d/222/apartment-pagrati",
                    "address": [{"addressLocality": "Pagrati", "postalCode": "11635"}],
                    "offers": {"price": 180000},
                },
                {
                    "@type": "House",
                    "url": "https://www.xe.gr/en/property/d/333/house-marousi",
                    "address": [12, "Marousi"],
                },
            ],
        }
        result = parse_search_page(xe_page(data), xe_gr, SearchFilters())

        assert [item.source_listing_id for item in result.listings] == ["111", "222", "333"]
        second = result.listings[1]
        assert second.area == "Pagrati"
        assert second.postal_code == "11635"
        assert second.price == 180000
        assert result.listings[2].area is None

    def test_quantitative_room_counts(self, xe_gr: SourceConfig):
        data = {
            "@type": "Apartment",
            "url": "https://www.xe.gr/en/property/d/555/apartment-zografou",
            "numberOfBedrooms": {"@type": "QuantitativeValue", "value": 3},
            "numberOfBathroomsTotal": [{"@type": "QuantitativeValue", "value": 2}],
        }
        result = parse_search_page(xe_page(data), xe_gr, SearchFilters())

        listing = result.listings[0]
        assert listing.bedrooms == 3
        assert listing.bathrooms == 2

    def test_malformed_block_falls_back_to_cards(self, xe_gr: SourceConfig):
        html = (
            '<html><head><script type="application/ld+json">{not json</script></head><body>'
            '<div data-property-id="444">'
            '<a href="/en/property/d/444/apartment-glyfada"><h3>Apartment, 95 m²</h3></a>'
            '<span class="ad-price">€ 310.000</span>'
            "</div></body></html>"
        )
        result = parse_search_page(html, xe_gr, SearchFilters())

        assert len(result.listings) == 1
        listing = result.listings[0]
        assert listing.source_listing_id == "444"
        assert listing.source_url == "https://www.xe.gr/en/property/d/444/apartment-glyfada"
        assert listing.title == "Apartment, 95 m²"
        assert listing.price == 310000
        assert listing.size_sqm == 95
        assert listing.raw_data["extraction"] == "card"


class TestTospitimouCards:
    """Test server-rendered Tospitimou result rows."""

    def test_per_area_price_derived(self, tospitimou: SourceConfig):
        """Per-m² rates are turned into totals using the card's size."""
        result = parse_search_page(TOSPITIMOU_PAGE, tospitimou, SearchFilters())
        listing = result.listings[0]

        assert listing.source_listing_id == "5551"
        assert listing.source_url == (
            "https://en.tospitimou.gr/sale-apartment-flat-Kolonaki/property/5551"
        )
        assert listing.title == "Apartment 85 sq.m."
        assert listing.price == 219045
        assert listing.price_derived is True
        assert listing.price_text == "€ 2,577/sq.m."
        assert listing.size_sqm == 85
        assert listing.bedrooms == 2
        assert listing.floor == "3"
        assert listing.area == "Kolonaki"
        assert listing.property_type == PropertyType.APARTMENT
        assert listing.transaction_type == TransactionType.SALE
        assert listing.images == ["https://www.spitogatos.gr/photos/5551.jpg"]

    def test_rent_row(self, tospitimou: SourceConfig):
        """Monthly prices mark the listing as a rental."""
        result = parse_search_page(TOSPITIMOU_PAGE, tospitimou, SearchFilters())
        listing = result.listings[1]

        assert listing.source_listing_id == "7"
        assert listing.price == 650
        assert listing.price_derived is False
        assert listing.transaction_type == TransactionType.RENT
        assert listing.property_type == PropertyType.STUDIO
        assert listing.area == "Pagrati"

    def test_next_page(self, tospitimou: SourceConfig):
        result = parse_search_page(TOSPITIMOU_PAGE, tospitimou, SearchFilters())
        assert result.has_next_page is True
        assert result.no_results is False

    def test_duplicate_rows_collapsed(self, tospitimou: SourceConfig):
        row = (
            '<div class="search-result" id="result-row_1" '
            'data-targeturl="/sale-house-Voula/property/1"><h2>House</h2></div>'
        )
        result = parse_search_page(f"<html><body>{row}{row}</body></html>", tospitimou, SearchFilters())
        assert [item.source_listing_id for item in result.listings] == ["1"]


class TestDetailLinks:
    """Test the detail-link fallback."""

    def test_links_with_container_text(self, spitogatos: SourceConfig):
        result = parse_search_page(SPITOGATOS_LINKS_PAGE, spitogatos, SearchFilters())

        assert [item.source_listing_id for item in result.listings] == ["101", "102"]
        first = result.listings[0]
        assert first.source_url == "https://www.spitogatos.gr/aggelies/101"
        assert first.title == "Διαμέρισμα 70 τ.μ."
        assert first.price == 180000
        assert first.size_sqm == 70
        assert first.bedrooms == 2
        assert first.raw_data["extraction"] == "link"

    def test_no_next_page(self, spitogatos: SourceConfig):
        result = parse_search_page(SPITOGATOS_LINKS_PAGE, spitogatos, SearchFilters())
        assert result.has_next_page is False


class TestPageMarkers:
    """Test empty-results and pagination detection."""

    def test_no_results_selector(self, tospitimou: SourceConfig):
        html = '<html><body><div class="no-results">Try another search</div></body></html>'
        result = parse_search_page(html, tospitimou, SearchFilters())
        assert result.no_results is True
        assert result.listings == []

    def test_no_results_phrase(self, spitogatos: SourceConfig):
        html = "<html><body><p>Δεν βρέθηκαν αποτελέσματα για την αναζήτησή σας</p></body></html>"
        assert parse_search_page(html, spitogatos, SearchFilters()).no_results is True

    def test_empty_page_is_not_no_results(self, spitogatos: SourceConfig):
        """An extraction mismatch is an empty result, not an empty-results marker."""
        result = parse_search_page("<html><body><p>Hello</p></body></html>", spitogatos, SearchFilters())
        assert result.listings == []
        assert result.no_results is False

    def test_disabled_next_link(self, xe_gr: SourceConfig):
        html = xe_page(XE_JSON_LD, '<a rel="next" class="pager disabled" href="#">Next</a>')
        assert parse_search_page(html, xe_gr, SearchFilters()).has_next_page is False

    def test_next_button_text(self, xe_gr: SourceConfig):
        html = xe_page(XE_JSON_LD, "<nav><button>Επόμενη</button></nav>")
        assert parse_search_page(html, xe_gr, SearchFilters()).has_next_page is True
