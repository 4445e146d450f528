"""Tests for the TTL policy table."""

import pytest

from shopease.cache.errors import ConfigurationError
from shopease.cache.policy import DEFAULT_TTLS, ResourceCategory, TtlPolicy, resolve_category


class TestDefaultTtls:
    """TTL bands follow data volatility."""

    def test_every_category_has_positive_ttl(self) -> None:
        policy = TtlPolicy()
        for category in ResourceCategory:
            assert policy.ttl_for(category) > 0

    @pytest.mark.parametrize(
        ("category", "ttl"),
        [
            ("product-list", 1800),
            ("product-detail", 1800),
            ("product-search", 1800),
            ("suggestions", 3600),
            ("categories", 3600),
            ("category-products", 1800),
            ("user-profile", 900),
            ("user-stats", 900),
            ("user-wishlist", 900),
            ("order-list", 300),
            ("all-orders", 300),
            ("order-detail", 300),
            ("order-stats", 300),
            ("cart", 60),
            ("cart-total", 60),
            ("search-results", 1800),
            ("reviews", 1800),
            ("review-stats", 1800),
            ("payment-status", 120),
        ],
    )
    def test_default_ttl(self, category: str, ttl: int) -> None:
        assert TtlPolicy().ttl_for(category) == ttl

    def test_volatile_data_expires_sooner(self) -> None:
        policy = TtlPolicy()
        assert policy.ttl_for("cart") <= 120
        assert policy.ttl_for("payment-status") <= 120
        assert policy.ttl_for("cart") < policy.ttl_for("order-detail")
        assert policy.ttl_for("order-detail") < policy.ttl_for("user-profile")
        assert policy.ttl_for("user-profile") < policy.ttl_for("product-detail")
        assert policy.ttl_for("product-detail") < policy.ttl_for("categories")


class TestOverrides:
    """Test TTL overrides from configuration."""

    def test_override_by_name(self) -> None:
        policy = TtlPolicy({"categories": 7200})
        assert policy.ttl_for(ResourceCategory.CATEGORIES) == 7200
        assert policy.ttl_for("cart") == DEFAULT_TTLS[ResourceCategory.CART]

    def test_override_by_member(self) -> None:
        policy = TtlPolicy({ResourceCategory.CART: 30})
        assert policy.ttl_for("cart") == 30

    @pytest.mark.parametrize("ttl", [0, -5, True, "60", 1.5])
    def test_invalid_override_rejected(self, ttl: object) -> None:
        with pytest.raises(ConfigurationError):
            TtlPolicy({"cart": ttl})  # type: ignore[dict-item]

    def test_unknown_override_category_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            TtlPolicy({"widgets": 60})

    def test_as_dict_uses_wire_names(self) -> None:
        table = TtlPolicy({"cart": 30}).as_dict()
        assert table["cart"] == 30
        assert set(table) == {category.value for category in ResourceCategory}

    def test_overrides_do_not_leak_between_policies(self) -> None:
        TtlPolicy({"cart": 30})
        assert TtlPolicy().ttl_for("cart") == 60


class TestResolveCategory:
    """Test category resolution."""

    def test_resolve_wire_name(self) -> None:
        assert resolve_category("order-detail") is ResourceCategory.ORDER_DETAIL

    def test_resolve_member(self) -> None:
        assert resolve_category(ResourceCategory.CART) is ResourceCategory.CART

    def test_unknown_category(self) -> None:
        with pytest.raises(ConfigurationError):
            resolve_category("widgets")
