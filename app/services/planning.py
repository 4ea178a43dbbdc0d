"""Colour x size production planning on top of the shop distribution.

Every (colour, size) variant in the matrix gets a production quantity and is
distributed across shops independently with the same priority settings.
"""

import logging
import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from app.services.distribution import (
    DistributionError,
    DistributionParams,
    InvalidMultiple,
    InvalidQuantity,
    ShopAllocation,
    ShopRef,
    calculate_distribution,
)

logger = logging.getLogger(__name__)

OVERSTOCK_RATIO = 1.5
UNDERSTOCK_RATIO = 0.5
OVERSTOCK_FACTOR = 0.7
UNDERSTOCK_FACTOR = 1.25

Variant = tuple[str, str]


class InvalidMatrix(DistributionError):
    pass


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def minimum_coverage_quantity(shop_count: int, multiple: int) -> int:
    """Smallest quantity that gives every shop at least one pack."""
    return max(0, shop_count) * multiple


def default_priority_shop_ids(shops: Sequence[ShopRef], count: int) -> list[str]:
    return [shop.id for shop in shops[: max(0, count)]]


def round_to_multiple(quantity: float, multiple: int) -> int:
    if multiple <= 0:
        raise InvalidMultiple(f"multiple must be a positive integer, got {multiple!r}")
    return max(multiple, round_half_up(quantity / multiple) * multiple)


@dataclass(frozen=True)
class Tendency:
    """Share of sold units per variant, colour and size, in percent."""

    total_units: int = 0
    variant_percentages: Mapping[Variant, float] = field(default_factory=dict)
    color_percentages: Mapping[str, float] = field(default_factory=dict)
    size_percentages: Mapping[str, float] = field(default_factory=dict)

    def historical_weight(self, color: str, size: str) -> float | None:
        exact = self.variant_percentages.get((color, size))
        if exact is not None:
            return exact
        if not self.variant_percentages and not self.color_percentages and not self.size_percentages:
            # Every variant would derive to 1 x 1 / 100, which normalizes to the even share.
            return None
        # Unseen combination: derive from the colour and size marginals.
        color_weight = self.color_percentages.get(color) or 1
        size_weight = self.size_percentages.get(size) or 1
        return color_weight * size_weight / 100


@dataclass(frozen=True)
class MatrixPlanParams:
    colors: tuple[str, ...]
    sizes: tuple[str, ...]
    shops: tuple[ShopRef, ...]
    multiple: int
    priority_percentage: float
    priority_shop_ids: frozenset[str] = frozenset()
    quantity_per_variant: int = 0
    manual_quantities: Mapping[Variant, int] = field(default_factory=dict)
    tendency: Tendency | None = None
    total_project_quantity: int = 0
    variant_stock: Mapping[Variant, int] | None = None
    shop_scores: Mapping[str, float] | None = None


@dataclass(frozen=True)
class VariantPlan:
    color: str
    size: str
    target_quantity: int
    allocations: tuple[ShopAllocation, ...]

    @property
    def total_allocated(self) -> int:
        return sum(item.allocation for item in self.allocations)


@dataclass(frozen=True)
class MatrixPlan:
    variants: tuple[VariantPlan, ...]

    @property
    def grand_total(self) -> int:
        return sum(variant.total_allocated for variant in self.variants)

    def planning_items(self) -> list[tuple[str, str, int]]:
        return [(variant.color, variant.size, variant.total_allocated) for variant in self.variants]


def unique_labels(values: Iterable[str]) -> tuple[str, ...]:
    """Strip labels, drop blanks and duplicates, keep first-seen order."""
    seen: dict[str, None] = {}
    for value in values:
        cleaned = value.strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return tuple(seen)


def _trend_weights(params: MatrixPlanParams, variants: Sequence[Variant]) -> dict[Variant, float]:
    even_share = 100 / len(variants)
    weights: dict[Variant, float] = {}
    for color, size in variants:
        weight = params.tendency.historical_weight(color, size) if params.tendency else None
        weights[(color, size)] = weight or even_share
    return weights


def _balance_factor(variant: Variant, variant_stock: Mapping[Variant, int]) -> float:
    if not variant_stock:
        return 1.0
    average = sum(variant_stock.values()) / (len(variant_stock) or 1)
    current = variant_stock.get(variant, 0)
    if current > average * OVERSTOCK_RATIO:
        return OVERSTOCK_FACTOR
    if 0 < current < average * UNDERSTOCK_RATIO:
        return UNDERSTOCK_FACTOR
    return 1.0


def _variant_targets(params: MatrixPlanParams, variants: Sequence[Variant]) -> dict[Variant, int]:
    weights = _trend_weights(params, variants) if params.tendency is not None else {}
    weight_total = sum(weights.values())
    # Manual keys are matched on the same stripped labels as the matrix.
    manual_quantities = {
        (color.strip(), size.strip()): quantity for (color, size), quantity in params.manual_quantities.items()
    }

    targets: dict[Variant, int] = {}
    for variant in variants:
        manual = manual_quantities.get(variant)
        if manual is not None:
            if manual < 0:
                raise InvalidQuantity(f"manual quantity for {variant!r} must be non-negative, got {manual!r}")
            targets[variant] = manual
        elif weight_total > 0:
            weight = weights[variant] / weight_total
            if params.variant_stock is not None:
                weight *= _balance_factor(variant, params.variant_stock)
            quantity = round_half_up(params.total_project_quantity * weight)
            targets[variant] = round_to_multiple(quantity, params.multiple)
        else:
            targets[variant] = params.quantity_per_variant
    return targets


def plan_variant_matrix(params: MatrixPlanParams) -> MatrixPlan:
    colors = unique_labels(params.colors)
    sizes = unique_labels(params.sizes)
    if not colors or not sizes:
        raise InvalidMatrix("at least one colour and one size are required")

    variants = [(color, size) for color in colors for size in sizes]
    targets = _variant_targets(params, variants)

    plans = []
    for color, size in variants:
        allocations = calculate_distribution(
            DistributionParams.build(
                total_quantity=targets[(color, size)],
                priority_percentage=params.priority_percentage,
                multiple=params.multiple,
                priority_shop_ids=params.priority_shop_ids,
                all_shops=params.shops,
                shop_scores=params.shop_scores,
            )
        )
        plans.append(
            VariantPlan(color=color, size=size, target_quantity=targets[(color, size)], allocations=tuple(allocations))
        )

    plan = MatrixPlan(variants=tuple(plans))
    logger.info(
        "variant matrix planned",
        extra={"variants": len(plans), "shops": len(params.shops), "grand_total": plan.grand_total},
    )
    return plan
