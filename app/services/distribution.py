"""Proportional stock distribution across shops.

Splits a production quantity between priority and regular shops, quantizes
every shop's share to whole packs of ``multiple`` units and hands the packs
lost to rounding back out, priority shops first. Pure: no I/O, no clock, no
shared state.

Conservation holds modulo ``multiple``: when ``total_quantity`` is not a
whole number of packs, up to ``multiple - 1`` units stay unallocated. That
residual is reported by :func:`summarize_distribution`, never raised.
"""

import logging
import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class DistributionError(ValueError):
    pass


class InvalidMultiple(DistributionError):
    pass


class InvalidQuantity(DistributionError):
    pass


class InvalidPriorityPercentage(DistributionError):
    pass


class InvalidShopScore(DistributionError):
    pass


@dataclass(frozen=True)
class ShopRef:
    id: str
    name: str


@dataclass(frozen=True)
class DistributionParams:
    total_quantity: float
    priority_percentage: float
    multiple: int
    priority_shop_ids: frozenset[str]
    all_shops: tuple[ShopRef, ...]
    shop_scores: Mapping[str, float] | None = None

    @classmethod
    def build(
        cls,
        *,
        total_quantity: float,
        priority_percentage: float,
        multiple: int,
        priority_shop_ids: Iterable[str] = (),
        all_shops: Iterable[ShopRef],
        shop_scores: Mapping[str, float] | None = None,
    ) -> "DistributionParams":
        return cls(
            total_quantity=total_quantity,
            priority_percentage=priority_percentage,
            multiple=multiple,
            priority_shop_ids=frozenset(priority_shop_ids),
            all_shops=tuple(all_shops),
            shop_scores=dict(shop_scores) if shop_scores is not None else None,
        )


@dataclass(frozen=True)
class ShopAllocation:
    shop_id: str
    shop_name: str
    target: float
    packs: int
    allocation: int
    # Pre-leftover fractional loss; ranking key only, not refreshed afterwards.
    remainder: float
    is_priority: bool


@dataclass(frozen=True)
class DistributionSummary:
    shop_count: int
    total_quantity: float
    total_allocated: int
    unallocated: float
    priority_allocated: int
    regular_allocated: int


def _validate(params: DistributionParams) -> None:
    multiple = params.multiple
    if isinstance(multiple, bool) or not isinstance(multiple, int) or multiple <= 0:
        raise InvalidMultiple(f"multiple must be a positive integer, got {multiple!r}")
    if not math.isfinite(params.total_quantity) or params.total_quantity < 0:
        raise InvalidQuantity(f"total_quantity must be a non-negative number, got {params.total_quantity!r}")
    pct = params.priority_percentage
    if not math.isfinite(pct) or pct < 0 or pct > 100:
        raise InvalidPriorityPercentage(f"priority_percentage must be within [0, 100], got {pct!r}")
    if params.shop_scores:
        for shop_id, score in params.shop_scores.items():
            if not math.isfinite(score) or score < 0:
                raise InvalidShopScore(f"score for shop {shop_id!r} must be a non-negative number, got {score!r}")


def _pool_targets(
    shops: Sequence[ShopRef],
    pool_total: float,
    scores: Mapping[str, float] | None,
) -> dict[str, float]:
    if not shops:
        # Nothing consumes an empty pool's share.
        return {}

    if scores is None:
        per_shop = pool_total / len(shops)
        return {shop.id: per_shop for shop in shops}

    known = [scores[shop.id] for shop in shops if scores.get(shop.id, 0) > 0]
    average = sum(known) / len(known) if known else 1.0

    # Shops without history score as the pool average; sqrt narrows the gap
    # between high- and low-volume shops (100 vs 900 becomes 10 vs 30).
    weights = {}
    for shop in shops:
        raw = scores.get(shop.id, 0)
        weights[shop.id] = math.sqrt(raw if raw > 0 else average)
    weight_total = sum(weights.values())
    return {shop_id: weight / weight_total * pool_total for shop_id, weight in weights.items()}


def _name_key(allocation: ShopAllocation) -> tuple[str, str]:
    return allocation.shop_name.casefold(), allocation.shop_name


def calculate_distribution(params: DistributionParams) -> list[ShopAllocation]:
    """Allocate ``params.total_quantity`` across ``params.all_shops`` in packs.

    Returns one :class:`ShopAllocation` per shop, sorted by shop name.
    Raises a :class:`DistributionError` subclass for a non-positive
    multiple, a negative quantity, a percentage outside ``[0, 100]`` or a
    negative shop score. An empty shop list yields an empty list.
    """
    _validate(params)
    shops = params.all_shops
    if not shops:
        return []

    multiple = params.multiple
    total = params.total_quantity
    priority_shops = [shop for shop in shops if shop.id in params.priority_shop_ids]
    regular_shops = [shop for shop in shops if shop.id not in params.priority_shop_ids]

    target_priority_total = total * params.priority_percentage / 100
    target_regular_total = total - target_priority_total
    targets = _pool_targets(priority_shops, target_priority_total, params.shop_scores)
    targets.update(_pool_targets(regular_shops, target_regular_total, params.shop_scores))

    is_priority = [shop.id in params.priority_shop_ids for shop in shops]
    shop_targets = [targets[shop.id] for shop in shops]
    packs = [math.floor(target / multiple) for target in shop_targets]
    remainders = [target - count * multiple for target, count in zip(shop_targets, packs)]

    available = total - sum(count * multiple for count in packs)
    if available >= multiple:
        # One stable ranking, walked once: priority tier first, then the
        # largest fractional loss. Equal keys keep input order.
        ranking = sorted(range(len(shops)), key=lambda i: (not is_priority[i], -remainders[i]))
        for index in ranking:
            if available < multiple:
                break
            packs[index] += 1
            available -= multiple

    allocations = [
        ShopAllocation(
            shop_id=shop.id,
            shop_name=shop.name,
            target=shop_targets[i],
            packs=packs[i],
            allocation=packs[i] * multiple,
            remainder=remainders[i],
            is_priority=is_priority[i],
        )
        for i, shop in enumerate(shops)
    ]

    logger.debug(
        "distribution calculated",
        extra={
            "shops": len(shops),
            "priority_shops": len(priority_shops),
            "total_quantity": total,
            "multiple": multiple,
            "unallocated": available,
        },
    )
    if available > 0:
        logger.info(
            "distribution left units unallocated",
            extra={"unallocated": available, "multiple": multiple, "total_quantity": total},
        )

    return sorted(allocations, key=_name_key)


def summarize_distribution(allocations: Sequence[ShopAllocation], total_quantity: float) -> DistributionSummary:
    total_allocated = sum(item.allocation for item in allocations)
    priority_allocated = sum(item.allocation for item in allocations if item.is_priority)
    return DistributionSummary(
        shop_count=len(allocations),
        total_quantity=total_quantity,
        total_allocated=total_allocated,
        unallocated=total_quantity - total_allocated,
        priority_allocated=priority_allocated,
        regular_allocated=total_allocated - priority_allocated,
    )
