"""Tests for the source registry and search URL construction."""

import pytest
from pydantic import ValidationError

from listingharvester.models.listing import PropertyType, SearchFilters, TransactionType
from listingharvester.models.source import SourceConfig, SourceId
from listingharvester.sources import (
    SOURCES,
    all_source_ids,
    build_search_url,
    get_source_config,
    lookup_area_id,
    source_names,
)
from listingharvester.sources.urls import title_case_slug


class TestRegistry:
    """Test source config lookup."""

    def test_lookup_by_enum_and_string(self):
        assert get_source_config(SourceId.XE_GR) is SOURCES[SourceId.XE_GR]
        assert get_source_config("xe_gr") is SOURCES[SourceId.XE_GR]

    @pytest.mark.parametrize("source_id", ["unknown", "", "XE_GR", None])
    def test_unknown_is_none(self, source_id):
        """Unknown ids give None so batch callers can skip them."""
        assert get_source_config(source_id) is None

    def test_all_source_ids(self):
        assert all_source_ids() == [SourceId.SPITOGATOS, SourceId.XE_GR, SourceId.TOSPITIMOU]

    def test_source_names(self):
        names = source_names()
        assert names["tospitimou"] == "Tospitimou.gr"
        assert names["xe_gr"] == "XE.gr"

    def test_rendering_flags(self):
        """Every portal renders results client-side and goes through the browser first."""
        assert all(config.script_rendered for config in SOURCES.values())

    def test_configs_are_immutable(self, xe_gr: SourceConfig):
        with pytest.raises(ValidationError):
            xe_gr.name = "Other"

    def test_rate_limits(self):
        assert SOURCES[SourceId.SPITOGATOS].rate_limit.requests_per_window == 15
        assert SOURCES[SourceId.XE_GR].rate_limit.window_seconds == 60.0


class TestAreaLookup:
    """Test area name to location code mapping."""

    def test_known_areas(self):
        assert lookup_area_id("Athens North") == "101"
        assert lookup_area_id("athens-north") == "101"
        assert lookup_area_id("Κηφισιά") == "101"

    def test_unknown_area(self):
        assert lookup_area_id("Nea Smyrni") is None

    def test_title_case_slug(self):
        assert title_case_slug("athens north") == "Athens-North"
        assert title_case_slug("nea-smyrni") == "Nea-Smyrni"


class TestSpitogatosUrls:
    """Test Spitogatos search URLs."""

    def test_default_sale(self, spitogatos: SourceConfig):
        url = build_search_url(spitogatos, SearchFilters())
        assert url == "https://www.spitogatos.gr/pwlisi/katoikies?sort=date&order=desc"

    def test_filters_and_page(self, spitogatos: SourceConfig):
        filters = SearchFilters(min_price=100000, bedrooms=2, areas=("Kolonaki",))
        url = build_search_url(spitogatos, filters, page=2)
        assert url == (
            "https://www.spitogatos.gr/pwlisi/katoikies"
            "?price_from=100000&bedrooms_from=2&geo_area_txt=Kolonaki"
            "&page=2&sort=date&order=desc"
        )

    def test_rent(self, spitogatos: SourceConfig):
        url = build_search_url(spitogatos, SearchFilters(transaction_type=TransactionType.RENT))
        assert url.startswith("https://www.spitogatos.gr/enoikiasi/katoikies?")


class TestXeUrls:
    """Test XE.gr search URLs."""

    def test_default_sale(self, xe_gr: SourceConfig):
        url = build_search_url(xe_gr, SearchFilters())
        assert url == "https://www.xe.gr/en/property/r/property-for-sale"

    def test_area_code(self, xe_gr: SourceConfig):
        url = build_search_url(xe_gr, SearchFilters(areas=("athens north",)))
        assert url == "https://www.xe.gr/en/property/r/property-for-sale/101_Athens-North"

    def test_type_and_rent(self, xe_gr: SourceConfig):
        filters = SearchFilters(
            transaction_type=TransactionType.RENT,
            property_types=(PropertyType.APARTMENT,),
        )
        assert build_search_url(xe_gr, filters) == "https://www.xe.gr/en/property/r/apartment-to-rent"

    def test_price_not_in_url(self, xe_gr: SourceConfig):
        """XE.gr ignores price params, so none are sent."""
        url = build_search_url(xe_gr, SearchFilters(min_price=100000, max_price=300000), page=3)
        assert url == "https://www.xe.gr/en/property/r/property-for-sale?page=3"

    def test_municipality_used_without_areas(self, xe_gr: SourceConfig):
        url = build_search_url(xe_gr, SearchFilters(municipalities=("Piraeus",)))
        assert url.endswith("/105_Piraeus")


class TestTospitimouUrls:
    """Test Tospitimou search URLs."""

    def test_default_area(self, tospitimou: SourceConfig):
        url = build_search_url(tospitimou, SearchFilters())
        assert url == (
            "https://en.tospitimou.gr/property/for-sale/houses/Athens-Center/"
            "area-ids_%5B100%5D,category_residential"
        )

    def test_page_parameter(self, tospitimou: SourceConfig):
        url = build_search_url(tospitimou, SearchFilters(min_size=50), page=2)
        assert url.endswith("category_residential?size_from=50&p=2")

    def test_known_area(self, tospitimou: SourceConfig):
        url = build_search_url(tospitimou, SearchFilters(areas=("Piraeus",)))
        assert url == (
            "https://en.tospitimou.gr/property/for-sale/houses/Piraeus/"
            "area-ids_%5B105%5D,category_residential"
        )

    def test_unknown_area(self, tospitimou: SourceConfig):
        url = build_search_url(
            tospitimou,
            SearchFilters(transaction_type=TransactionType.RENT, areas=("Nea Smyrni",)),
        )
        assert url == "https://en.tospitimou.gr/property/to-rent/houses/Nea-Smyrni"

    def test_first_page_has_no_marker(self, tospitimou: SourceConfig):
        assert "p=" not in build_search_url(tospitimou, SearchFilters(), page=1)
