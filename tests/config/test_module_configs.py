"""Module configuration schemas (purchasing and catalogue)."""

import pytest

from backoffice_modules.catalogue.config import CatalogueConfig
from backoffice_modules.purchasing.config import PurchasingConfig


class TestPurchasingConfig:

    def test_defaults(self):
        config = PurchasingConfig.with_defaults()
        assert config.lock_timeout_ms == 5000
        assert config.allow_negative_stock is False
        assert config.verify_stock_on_commit is True
        assert (config.number_prefix, config.number_width) == ("PUR", 6)

    def test_from_dict(self):
        config = PurchasingConfig.from_dict({"number_prefix": "OC", "number_width": 4})
        assert config.number_prefix == "OC"

    def test_unknown_key_rejected(self):
        with pytest.raises(TypeError):
            PurchasingConfig.from_dict({"lock_timeout": 1})

    @pytest.mark.parametrize("fields", [
        {"lock_timeout_ms": 0},
        {"lock_timeout_ms": -10},
        {"lock_timeout_ms": True},
        {"number_prefix": "pur"},
        {"number_prefix": ""},
        {"number_prefix": "1PUR"},
        {"number_prefix": "ABCDEFGHIJK"},
        {"number_width": 0},
        {"number_width": 13},
    ])
    def test_invalid(self, fields):
        with pytest.raises(ValueError):
            PurchasingConfig(**fields)

    def test_frozen(self):
        config = PurchasingConfig()
        with pytest.raises(AttributeError):
            config.lock_timeout_ms = 1


class TestCatalogueConfig:

    def test_defaults(self):
        config = CatalogueConfig.with_defaults()
        assert (config.expiring_window_days, config.default_page_size, config.max_page_size) == (7, 20, 200)

    @pytest.mark.parametrize("fields", [
        {"expiring_window_days": -1},
        {"default_page_size": 0},
        {"default_page_size": 50, "max_page_size": 10},
    ])
    def test_invalid(self, fields):
        with pytest.raises(ValueError):
            CatalogueConfig(**fields)
