"""Cache key schema for ShopEase.

Key format: {namespace}:{prefix}:{segments...}

Where:
- namespace: "shopease" by default (shared Redis instances)
- prefix: top-level resource family ("products", "product", "user", ...)
- segments: normalized parameters in a fixed order per category

Normalization rules:
- page/limit default to 1/20 and accept ints or digit strings
- free-text queries are stripped, lower-cased and Base64URL encoded
- other text filters are stripped and Base64URL encoded (case kept)
- absent nullable filters use NEUTRAL ("~"), which Base64URL never produces,
  so "no filter" and "empty filter" map to different keys
- identifiers must be ints or plain strings so they can appear verbatim in
  invalidation patterns
"""

from __future__ import annotations

import base64
import re
from collections.abc import Mapping
from dataclasses import dataclass, fields
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any, ClassVar

from shopease.cache.errors import ConfigurationError, InvalidParameterError
from shopease.cache.policy import ResourceCategory, TtlPolicy, resolve_category

DEFAULT_NAMESPACE = "shopease"
NEUTRAL = "~"
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
DEFAULT_SUGGESTION_LIMIT = 10

# Every key starts with one of these after the namespace.
TOP_LEVEL_PREFIXES: tuple[str, ...] = (
    "products",
    "product",
    "category",
    "user",
    "orders",
    "order",
    "cart",
    "search",
    "reviews",
    "payment",
)

_IDENTIFIER_RE = re.compile(r"[A-Za-z0-9_.@-]+")
_TOKEN_RE = re.compile(r"[a-z0-9_-]+")
_NAMESPACE_RE = re.compile(r"[A-Za-z0-9_.-]+")
# ASCII digits only; bounded so int() never hits the digit limit
_DIGITS_RE = re.compile(r"[0-9]{1,18}")

ResourceId = int | str


def encode_text(value: str) -> str:
    """Base64URL encode text without padding."""
    return base64.urlsafe_b64encode(value.encode("utf-8")).decode("ascii").rstrip("=")


def normalize_identifier(name: str, value: Any) -> str:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        text = value.strip()
        if _IDENTIFIER_RE.fullmatch(text):
            return text
    raise InvalidParameterError(f"{name} must be an integer or a plain identifier, got {value!r}")


def _positive_int(name: str, value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        number = value
    elif isinstance(value, str) and _DIGITS_RE.fullmatch(value.strip()):
        number = int(value.strip())
    else:
        raise InvalidParameterError(f"{name} must be a positive integer, got {value!r}")
    if number < 1:
        raise InvalidParameterError(f"{name} must be a positive integer, got {value!r}")
    return number


def _text(name: str, value: Any, *, lower: bool) -> str:
    if value is None:
        return NEUTRAL
    if not isinstance(value, str):
        raise InvalidParameterError(f"{name} must be a string, got {value!r}")
    text = value.strip()
    return encode_text(text.lower() if lower else text)


def _token(name: str, value: Any) -> str:
    if value is None:
        return NEUTRAL
    if isinstance(value, str):
        token = value.strip().lower()
        if _TOKEN_RE.fullmatch(token):
            return token
    raise InvalidParameterError(f"{name} must be a simple token, got {value!r}")


def _price(name: str, value: Any) -> str:
    if value is None:
        return NEUTRAL
    if isinstance(value, bool) or not isinstance(value, int | float | str | Decimal):
        raise InvalidParameterError(f"{name} must be a number, got {value!r}")
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidParameterError(f"{name} must be a number, got {value!r}") from None
    if not number.is_finite():
        raise InvalidParameterError(f"{name} must be finite, got {value!r}")
    return format(number.normalize(), "f")


def _pagination(page: Any, limit: Any) -> str:
    return f"p{_positive_int('page', page)}:l{_positive_int('limit', limit)}"


# -----------------------------------------------------------------------------
# Params records, one per category
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CacheParams:
    """Base class for per-category key parameters."""

    resource: ClassVar[ResourceCategory]
    prefix: ClassVar[str]

    def path(self) -> str:
        """Key path below the namespace."""
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class ProductListParams(CacheParams):
    resource: ClassVar[ResourceCategory] = ResourceCategory.PRODUCT_LIST
    prefix: ClassVar[str] = "products"

    page: Any = DEFAULT_PAGE
    limit: Any = DEFAULT_LIMIT
    category: str | None = None
    status: str = "active"

    def path(self) -> str:
        cat = _text("category", self.category, lower=False)
        status = _token("status", self.status)
        return f"products:list:cat:{cat}:status:{status}:{_pagination(self.page, self.limit)}"


@dataclass(frozen=True, slots=True)
class ProductDetailParams(CacheParams):
    resource: ClassVar[ResourceCategory] = ResourceCategory.PRODUCT_DETAIL
    prefix: ClassVar[str] = "product"

    id: ResourceId

    def path(self) -> str:
        return f"product:{normalize_identifier('id', self.id)}"


@dataclass(frozen=True, slots=True)
class ProductSearchParams(CacheParams):
    resource: ClassVar[ResourceCategory] = ResourceCategory.PRODUCT_SEARCH
    prefix: ClassVar[str] = "products"

    query: str | None = None
    category: str | None = None
    min_price: Any = None
    max_price: Any = None
    sort: str = "name"
    page: Any = DEFAULT_PAGE
    limit: Any = DEFAULT_LIMIT

    def path(self) -> str:
        return ":".join(
            (
                "products:search",
                f"q:{_text('query', self.query, lower=True)}",
                f"cat:{_text('category', self.category, lower=False)}",
                f"min:{_price('min_price', self.min_price)}",
                f"max:{_price('max_price', self.max_price)}",
                f"sort:{_token('sort', self.sort)}",
                _pagination(self.page, self.limit),
            )
        )


@dataclass(frozen=True, slots=True)
class SuggestionsParams(CacheParams):
    resource: ClassVar[ResourceCategory] = ResourceCategory.SUGGESTIONS
    prefix: ClassVar[str] = "products"

    query: str | None = None
    limit: Any = DEFAULT_SUGGESTION_LIMIT

    def path(self) -> str:
        q = _text("query", self.query, lower=True)
        return f"products:suggestions:{q}:l{_positive_int('limit', self.limit)}"


@dataclass(frozen=True, slots=True)
class CategoriesParams(CacheParams):
    resource: ClassVar[ResourceCategory] = ResourceCategory.CATEGORIES
    prefix: ClassVar[str] = "products"

    def path(self) -> str:
        return "products:categories"


@dataclass(frozen=True, slots=True)
class CategoryProductsParams(CacheParams):
    resource: ClassVar[ResourceCategory] = ResourceCategory.CATEGORY_PRODUCTS
    prefix: ClassVar[str] = "category"

    category_id: ResourceId
    page: Any = DEFAULT_PAGE
    limit: Any = DEFAULT_LIMIT

    def path(self) -> str:
        category_id = normalize_identifier("category_id", self.category_id)
        return f"category:{category_id}:{_pagination(self.page, self.limit)}"


@dataclass(frozen=True, slots=True)
class UserProfileParams(CacheParams):
    resource: ClassVar[ResourceCategory] = ResourceCategory.USER_PROFILE
    prefix: ClassVar[str] = "user"

    user_id: ResourceId

    def path(self) -> str:
        return f"user:{normalize_identifier('user_id', self.user_id)}:profile"


@dataclass(frozen=True, slots=True)
class UserStatsParams(CacheParams):
    resource: ClassVar[ResourceCategory] = ResourceCategory.USER_STATS
    prefix: ClassVar[str] = "user"

    user_id: ResourceId

    def path(self) -> str:
        return f"user:{normalize_identifier('user_id', self.user_id)}:stats"


@dataclass(frozen=True, slots=True)
class UserWishlistParams(CacheParams):
    resource: ClassVar[ResourceCategory] = ResourceCategory.USER_WISHLIST
    prefix: ClassVar[str] = "user"

    user_id: ResourceId

    def path(self) -> str:
        return f"user:{normalize_identifier('user_id', self.user_id)}:wishlist"


@dataclass(frozen=True, slots=True)
class OrderListParams(CacheParams):
    resource: ClassVar[ResourceCategory] = ResourceCategory.ORDER_LIST
    prefix: ClassVar[str] = "orders"

    user_id: ResourceId
    status: str | None = None
    page: Any = DEFAULT_PAGE
    limit: Any = DEFAULT_LIMIT

    def path(self) -> str:
        user_id = normalize_identifier("user_id", self.user_id)
        status = _token("status", self.status)
        return f"orders:user:{user_id}:status:{status}:{_pagination(self.page, self.limit)}"


@dataclass(frozen=True, slots=True)
class AllOrdersParams(CacheParams):
    resource: ClassVar[ResourceCategory] = ResourceCategory.ALL_ORDERS
    prefix: ClassVar[str] = "orders"

    status: str | None = None
    page: Any = DEFAULT_PAGE
    limit: Any = DEFAULT_LIMIT

    def path(self) -> str:
        status = _token("status", self.status)
        return f"orders:all:status:{status}:{_pagination(self.page, self.limit)}"


@dataclass(frozen=True, slots=True)
class OrderDetailParams(CacheParams):
    resource: ClassVar[ResourceCategory] = ResourceCategory.ORDER_DETAIL
    prefix: ClassVar[str] = "order"

    id: ResourceId

    def path(self) -> str:
        return f"order:{normalize_identifier('id', self.id)}"


@dataclass(frozen=True, slots=True)
class OrderStatsParams(CacheParams):
    resource: ClassVar[ResourceCategory] = ResourceCategory.ORDER_STATS
    prefix: ClassVar[str] = "user"

    user_id: ResourceId

    def path(self) -> str:
        return f"user:{normalize_identifier('user_id', self.user_id)}:order:stats"


@dataclass(frozen=True, slots=True)
class CartParams(CacheParams):
    resource: ClassVar[ResourceCategory] = ResourceCategory.CART
    prefix: ClassVar[str] = "cart"

    user_id: ResourceId

    def path(self) -> str:
        return f"cart:{normalize_identifier('user_id', self.user_id)}:items"


@dataclass(frozen=True, slots=True)
class CartTotalParams(CacheParams):
    resource: ClassVar[ResourceCategory] = ResourceCategory.CART_TOTAL
    prefix: ClassVar[str] = "cart"

    user_id: ResourceId

    def path(self) -> str:
        return f"cart:{normalize_identifier('user_id', self.user_id)}:total"


@dataclass(frozen=True, slots=True)
class SearchResultsParams(CacheParams):
    resource: ClassVar[ResourceCategory] = ResourceCategory.SEARCH_RESULTS
    prefix: ClassVar[str] = "search"

    query: str | None = None
    type: str = "all"
    page: Any = DEFAULT_PAGE
    limit: Any = DEFAULT_LIMIT

    def path(self) -> str:
        kind = _token("type", self.type)
        q = _text("query", self.query, lower=True)
        return f"search:{kind}:{q}:{_pagination(self.page, self.limit)}"


@dataclass(frozen=True, slots=True)
class ReviewsParams(CacheParams):
    resource: ClassVar[ResourceCategory] = ResourceCategory.REVIEWS
    prefix: ClassVar[str] = "reviews"

    product_id: ResourceId
    page: Any = DEFAULT_PAGE
    limit: Any = DEFAULT_LIMIT

    def path(self) -> str:
        product_id = normalize_identifier("product_id", self.product_id)
        return f"reviews:product:{product_id}:{_pagination(self.page, self.limit)}"


@dataclass(frozen=True, slots=True)
class ReviewStatsParams(CacheParams):
    resource: ClassVar[ResourceCategory] = ResourceCategory.REVIEW_STATS
    prefix: ClassVar[str] = "reviews"

    product_id: ResourceId

    def path(self) -> str:
        return f"reviews:product:{normalize_identifier('product_id', self.product_id)}:stats"


@dataclass(frozen=True, slots=True)
class PaymentStatusParams(CacheParams):
    resource: ClassVar[ResourceCategory] = ResourceCategory.PAYMENT_STATUS
    prefix: ClassVar[str] = "payment"

    order_id: ResourceId

    def path(self) -> str:
        return f"payment:{normalize_identifier('order_id', self.order_id)}:status"


PARAMS_BY_CATEGORY: Mapping[ResourceCategory, type[CacheParams]] = MappingProxyType(
    {
        params_cls.resource: params_cls
        for params_cls in (
            ProductListParams,
            ProductDetailParams,
            ProductSearchParams,
            SuggestionsParams,
            CategoriesParams,
            CategoryProductsParams,
            UserProfileParams,
            UserStatsParams,
            UserWishlistParams,
            OrderListParams,
            AllOrdersParams,
            OrderDetailParams,
            OrderStatsParams,
            CartParams,
            CartTotalParams,
            SearchResultsParams,
            ReviewsParams,
            ReviewStatsParams,
            PaymentStatusParams,
        )
    }
)

_missing = set(ResourceCategory) - set(PARAMS_BY_CATEGORY)
if _missing:
    raise ConfigurationError(
        f"No params record defined for categories: {sorted(c.value for c in _missing)}"
    )
_unknown_prefixes = {cls.prefix for cls in PARAMS_BY_CATEGORY.values()} - set(TOP_LEVEL_PREFIXES)
if _unknown_prefixes:
    raise ConfigurationError(f"Key prefixes missing from TOP_LEVEL_PREFIXES: {_unknown_prefixes}")


# -----------------------------------------------------------------------------
# Key builder
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CacheKey:
    """A concrete cache key with the TTL of its category."""

    key: str
    ttl: int
    category: ResourceCategory


class KeyBuilder:
    """Derives cache keys and TTLs from (category, params).

    Pure and stateless beyond the namespace and the TTL policy.
    """

    def __init__(self, policy: TtlPolicy | None = None, namespace: str = DEFAULT_NAMESPACE):
        if not _NAMESPACE_RE.fullmatch(namespace):
            raise ConfigurationError(f"Invalid cache namespace: {namespace!r}")
        self.policy = policy or TtlPolicy()
        self.namespace = namespace

    def build(
        self,
        category: ResourceCategory | str,
        params: CacheParams | Mapping[str, Any] | None = None,
    ) -> CacheKey:
        """Build the key and TTL for a category and its parameters.

        Raises:
            ConfigurationError: Unknown category.
            InvalidParameterError: Params of the wrong shape or with invalid values.
        """
        resolved = resolve_category(category)
        record = self.coerce_params(resolved, params)
        return CacheKey(
            key=f"{self.namespace}:{record.path()}",
            ttl=self.policy.ttl_for(resolved),
            category=resolved,
        )

    def coerce_params(
        self,
        category: ResourceCategory,
        params: CacheParams | Mapping[str, Any] | None,
    ) -> CacheParams:
        """Turn a mapping (or None) into the category's params record."""
        params_cls = PARAMS_BY_CATEGORY[category]

        if isinstance(params, CacheParams):
            if not isinstance(params, params_cls):
                raise InvalidParameterError(
                    f"{type(params).__name__} cannot build keys for {category.value}"
                )
            return params

        values = dict(params or {})
        allowed = {f.name for f in fields(params_cls)}
        unknown = set(values) - allowed
        if unknown:
            raise InvalidParameterError(
                f"Unknown parameters for {category.value}: {sorted(unknown)}"
            )
        try:
            return params_cls(**values)
        except TypeError as e:
            raise InvalidParameterError(f"Invalid parameters for {category.value}: {e}") from None

    def prefix_of(self, category: ResourceCategory | str) -> str:
        """Top-level prefix of the keys of a category."""
        return PARAMS_BY_CATEGORY[resolve_category(category)].prefix

    def top_level_prefixes(self) -> tuple[str, ...]:
        return TOP_LEVEL_PREFIXES

    def pattern(self, relative: str) -> str:
        """Qualify a relative glob pattern with the namespace."""
        return f"{self.namespace}:{relative}"

    def parse_key(self, key: str) -> dict[str, str] | None:
        """Parse a cache key into its components.

        Returns None if the key doesn't belong to this namespace's keyspace.
        """
        parts = key.split(":", 2)
        if len(parts) < 2 or parts[0] != self.namespace or parts[1] not in TOP_LEVEL_PREFIXES:
            return None

        return {
            "namespace": parts[0],
            "prefix": parts[1],
            "rest": parts[2] if len(parts) > 2 else "",
        }
