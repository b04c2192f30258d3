# Overview: Product filter/sort/window compilation for catalog listing.

"""
Product Filter Compiler

Turns an optional, partially-specified filter request into a Product query:
- every present field adds one predicate, all ANDed together
- absent fields impose no constraint
- ordering comes from a closed SortKey -> column mapping
- offset/limit are applied last, on the filtered and sorted set

parse_product_filters() is the validation boundary. Anything malformed
(unknown key, bad enum, out-of-range window) raises ValidationError before a
query is built.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import func

from ..extensions import db
from ..models import Product
from ..models.catalog import PRODUCT_STATUSES
from ..validation import ValidationError, coerce_bool, coerce_int

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


class SortKey(str, enum.Enum):
    NAME = "name"
    PRICE = "price"
    CREATED_AT = "created_at"
    FEATURED = "featured"


class SortOrder(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"


SORT_COLUMNS = {
    SortKey.NAME: Product.name,
    SortKey.PRICE: Product.price,
    SortKey.CREATED_AT: Product.created_at,
    SortKey.FEATURED: Product.featured,
}

FILTER_FIELDS = {
    "category_id",
    "min_price",
    "max_price",
    "platform",
    "region",
    "featured",
    "status",
    "search",
    "sort_by",
    "sort_order",
    "limit",
    "offset",
}


@dataclass(frozen=True)
class ProductFilters:
    category_id: int | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    platform: str | None = None
    region: str | None = None
    featured: bool | None = None
    status: str | None = None
    search: str | None = None
    sort_by: SortKey | None = None
    sort_order: SortOrder = SortOrder.ASC
    limit: int = DEFAULT_LIMIT
    offset: int = 0


def _coerce_price_bound(key: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{key} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{key} must be a finite number")
    if amount < 0:
        raise ValidationError(f"{key} must be >= 0")
    return amount


def _coerce_text(key: str, value: Any) -> str | None:
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    value = value.strip()
    # Empty text filters are "no constraint", never "match empty"
    return value or None


def _coerce_enum(enum_cls, key: str, value: Any):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{key} must be one of: {allowed}")


def parse_product_filters(
    raw: dict | None,
    *,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> ProductFilters:
    """
    Validate + normalize a raw filter mapping (JSON body or query args).

    None values are treated as absent. Query-string values are accepted in
    their string form ("25", "true").

    Raises:
        ValidationError: unknown field, bad type, bad enum value,
            limit outside 1..max_limit, negative offset, or
            min_price > max_price
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValidationError("Filters must be an object")

    unknown = sorted(k for k in raw if k not in FILTER_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown filter fields: {', '.join(unknown)}")

    values = {k: v for k, v in raw.items() if v is not None}
    parsed: dict[str, Any] = {}

    if "category_id" in values:
        parsed["category_id"] = coerce_int("category_id", values["category_id"])
    for key in ("min_price", "max_price"):
        if key in values:
            parsed[key] = _coerce_price_bound(key, values[key])
    for key in ("platform", "region", "search"):
        if key in values:
            parsed[key] = _coerce_text(key, values[key])
    if "featured" in values:
        parsed["featured"] = coerce_bool("featured", values["featured"])
    if "status" in values:
        status = values["status"]
        if status not in PRODUCT_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(PRODUCT_STATUSES)}")
        parsed["status"] = status
    if "sort_by" in values:
        parsed["sort_by"] = _coerce_enum(SortKey, "sort_by", values["sort_by"])
    if "sort_order" in values:
        parsed["sort_order"] = _coerce_enum(SortOrder, "sort_order", values["sort_order"])

    limit = coerce_int("limit", values["limit"]) if "limit" in values else default_limit
    if limit < 1 or limit > max_limit:
        raise ValidationError(f"limit must be between 1 and {max_limit}")
    parsed["limit"] = limit

    offset = coerce_int("offset", values["offset"]) if "offset" in values else 0
    if offset < 0:
        raise ValidationError("offset must be >= 0")
    parsed["offset"] = offset

    min_price = parsed.get("min_price")
    max_price = parsed.get("max_price")
    if min_price is not None and max_price is not None and min_price > max_price:
        raise ValidationError("min_price cannot be greater than max_price")

    return ProductFilters(**parsed)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def filter_predicates(filters: ProductFilters) -> list:
    """One SQL predicate per present filter field; order is irrelevant."""
    predicates = []

    if filters.category_id is not None:
        predicates.append(Product.category_id == filters.category_id)
    if filters.min_price is not None:
        predicates.append(Product.price >= filters.min_price)
    if filters.max_price is not None:
        predicates.append(Product.price <= filters.max_price)
    if filters.platform:
        predicates.append(func.lower(Product.platform) == filters.platform.lower())
    if filters.region:
        predicates.append(func.lower(Product.region) == filters.region.lower())
    if filters.featured is not None:
        predicates.append(Product.featured.is_(filters.featured))
    if filters.status:
        predicates.append(Product.status == filters.status)
    if filters.search:
        pattern = f"%{_escape_like(filters.search)}%"
        predicates.append(Product.name.ilike(pattern, escape="\\"))

    return predicates


def order_clauses(filters: ProductFilters) -> list:
    """
    Ordering for the filtered set.

    Without sort_by the listing is newest first. Product.id follows the
    primary key in the same direction so offset/limit pages do not overlap.
    """
    if filters.sort_by is None:
        return [Product.created_at.desc(), Product.id.desc()]

    column = SORT_COLUMNS[filters.sort_by]
    if filters.sort_order is SortOrder.DESC:
        return [column.desc(), Product.id.desc()]
    return [column.asc(), Product.id.asc()]


def build_product_query(filters: ProductFilters):
    """Compile filters into a windowed, ordered Product query."""
    query = db.session.query(Product)
    for predicate in filter_predicates(filters):
        query = query.filter(predicate)

    return (
        query.order_by(*order_clauses(filters))
        .offset(filters.offset)
        .limit(filters.limit)
    )
