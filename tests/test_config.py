import os
import unittest
from unittest.mock import patch

import pytest

import config
from core.exceptions import ResourceNotFoundException


class CityConfigTests(unittest.TestCase):
    def test_get_city_config_defaults_to_default_city(self) -> None:
        city = config.get_city_config(None)
        assert city["id"] == config.DEFAULT_CITY_ID
        assert city["timezone"]

    def test_get_city_config_is_case_insensitive(self) -> None:
        assert config.get_city_config(" DC ")["id"] == "dc"

    def test_get_city_config_rejects_unknown_city(self) -> None:
        with pytest.raises(ResourceNotFoundException):
            config.get_city_config("atlantis")

    def test_build_gbfs_url_joins_parts(self) -> None:
        assert (
            config.build_gbfs_url("nyc", "station_information.json")
            == "https://gbfs.citibikenyc.com/gbfs/en/station_information.json"
        )


class PricingConfigTests(unittest.TestCase):
    def test_get_pricing_plan_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            plan = config.get_pricing_plan()
        assert plan.classic_free_minutes == 45
        assert plan.ebike_cents_per_minute == 26
        assert plan.missing_fields() == []

    def test_get_pricing_plan_reads_overrides(self) -> None:
        env = {
            "PRICING_EBIKE_CENTS_PER_MINUTE": "19.5",
            "PRICING_CLASSIC_FREE_MINUTES": "30",
        }
        with patch.dict(os.environ, env, clear=True):
            plan = config.get_pricing_plan()
        assert plan.ebike_cents_per_minute == 19.5
        assert plan.classic_free_minutes == 30

    def test_empty_value_removes_field(self) -> None:
        with patch.dict(
            os.environ,
            {"PRICING_TRANSIT_FLAT_FARE_CENTS": "", "PRICING_MAX_BILLED_MINUTES": ""},
            clear=True,
        ):
            plan = config.get_pricing_plan()
        assert plan.transit_flat_fare_cents is None
        assert plan.missing_fields() == ["transit_flat_fare_cents"]
        assert plan.max_billed_minutes == 1440

    def test_non_numeric_value_is_ignored(self) -> None:
        with patch.dict(
            os.environ, {"PRICING_EBIKE_CENTS_PER_MINUTE": "cheap"}, clear=True
        ):
            plan = config.get_pricing_plan()
        assert plan.ebike_cents_per_minute == 26

    def test_normalization_settings_use_city_timezone(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            settings = config.get_normalization_settings("sf")
        assert settings.timezone == "America/Los_Angeles"
