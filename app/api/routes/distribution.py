import logging
from collections.abc import Sequence

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.database import get_db
from app.schemas.distribution import (
    DistributionDefaultsOut,
    DistributionOut,
    DistributionPreviewRequest,
    MatrixPlanOut,
    MatrixPlanRequest,
    PercentageOut,
    ShopAllocationOut,
    ShopDistributionRequest,
    TendencyOut,
    VariantPercentageOut,
    VariantPlanOut,
    VariantQuantityIn,
)
from app.services.distribution import (
    DistributionError,
    DistributionParams,
    ShopAllocation,
    ShopRef,
    calculate_distribution,
    summarize_distribution,
)
from app.services.planning import (
    MatrixPlanParams,
    default_priority_shop_ids,
    minimum_coverage_quantity,
    plan_variant_matrix,
    unique_labels,
)
from app.services.sales_history import (
    compute_shop_scores,
    compute_tendency,
    load_active_shops,
    load_variant_stock,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/distribution", tags=["Distribution"])


def _unprocessable(exc: DistributionError) -> HTTPException:
    logger.warning("distribution rejected", extra={"reason": str(exc), "error": type(exc).__name__})
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))


def _distribution_out(
    allocations: Sequence[ShopAllocation],
    *,
    total_quantity: float,
    multiple: int,
    priority_percentage: float,
) -> DistributionOut:
    summary = summarize_distribution(allocations, total_quantity)
    return DistributionOut(
        total_quantity=total_quantity,
        multiple=multiple,
        priority_percentage=priority_percentage,
        total_allocated=summary.total_allocated,
        unallocated=summary.unallocated,
        priority_allocated=summary.priority_allocated,
        regular_allocated=summary.regular_allocated,
        allocations=[ShopAllocationOut.model_validate(item) for item in allocations],
    )


def _active_shops_or_404(db: Session) -> list[ShopRef]:
    shops = load_active_shops(db)
    if not shops:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active shops to distribute to")
    return shops


def _resolve_priority_ids(shops: Sequence[ShopRef], requested: list[int] | None) -> list[str]:
    if requested is None:
        return default_priority_shop_ids(shops, settings.distribution_default_priority_shop_count)
    return [str(shop_id) for shop_id in requested]


@router.post("/preview", response_model=DistributionOut)
def preview_distribution(payload: DistributionPreviewRequest):
    params = DistributionParams.build(
        total_quantity=payload.total_quantity,
        priority_percentage=payload.priority_percentage,
        multiple=payload.multiple,
        priority_shop_ids=payload.priority_shop_ids,
        all_shops=[ShopRef(id=shop.id, name=shop.name) for shop in payload.shops],
        shop_scores=payload.shop_scores,
    )
    try:
        allocations = calculate_distribution(params)
    except DistributionError as exc:
        raise _unprocessable(exc) from exc
    return _distribution_out(
        allocations,
        total_quantity=payload.total_quantity,
        multiple=payload.multiple,
        priority_percentage=payload.priority_percentage,
    )


@router.post("/shops/preview", response_model=DistributionOut)
def preview_shop_distribution(payload: ShopDistributionRequest, db: Session = Depends(get_db)):
    shops = _active_shops_or_404(db)
    multiple = payload.multiple or settings.distribution_default_multiple
    priority_percentage = (
        payload.priority_percentage
        if payload.priority_percentage is not None
        else settings.distribution_default_priority_percentage
    )
    shop_scores = None
    if payload.use_sales_history:
        shop_scores = compute_shop_scores(
            db, payload.lookback_days if payload.lookback_days is not None else settings.sales_lookback_days
        )

    params = DistributionParams.build(
        total_quantity=payload.total_quantity,
        priority_percentage=priority_percentage,
        multiple=multiple,
        priority_shop_ids=_resolve_priority_ids(shops, payload.priority_shop_ids),
        all_shops=shops,
        shop_scores=shop_scores,
    )
    try:
        allocations = calculate_distribution(params)
    except DistributionError as exc:
        raise _unprocessable(exc) from exc
    return _distribution_out(
        allocations,
        total_quantity=payload.total_quantity,
        multiple=multiple,
        priority_percentage=priority_percentage,
    )


@router.post("/plan", response_model=MatrixPlanOut)
def plan_distribution(payload: MatrixPlanRequest, db: Session = Depends(get_db)):
    shops = _active_shops_or_404(db)
    multiple = payload.multiple or settings.distribution_default_multiple
    priority_percentage = (
        payload.priority_percentage
        if payload.priority_percentage is not None
        else settings.distribution_default_priority_percentage
    )
    quantity_per_variant = (
        payload.quantity_per_variant
        if payload.quantity_per_variant is not None
        else settings.distribution_default_quantity_per_variant
    )
    priority_ids = _resolve_priority_ids(shops, payload.priority_shop_ids)
    lookback_days = payload.lookback_days if payload.lookback_days is not None else settings.sales_lookback_days
    product_code = payload.product_code.strip().upper() if payload.product_code else None

    tendency = None
    variant_stock = None
    if payload.apply_trends:
        tendency = compute_tendency(db, lookback_days=lookback_days, product_code=product_code)
        if payload.balance_stock:
            variant_stock = load_variant_stock(db, product_code=product_code)

    colors = unique_labels(payload.colors)
    sizes = unique_labels(payload.sizes)
    params = MatrixPlanParams(
        colors=colors,
        sizes=sizes,
        shops=tuple(shops),
        multiple=multiple,
        priority_percentage=priority_percentage,
        priority_shop_ids=frozenset(priority_ids),
        quantity_per_variant=quantity_per_variant,
        manual_quantities={
            (item.color.strip(), item.size.strip()): item.quantity for item in payload.manual_quantities
        },
        tendency=tendency,
        total_project_quantity=(
            payload.total_project_quantity
            if payload.total_project_quantity is not None
            else quantity_per_variant * len(colors) * len(sizes)
        ),
        variant_stock=variant_stock,
        shop_scores=compute_shop_scores(db, lookback_days) if payload.use_sales_history else None,
    )
    try:
        plan = plan_variant_matrix(params)
    except DistributionError as exc:
        raise _unprocessable(exc) from exc

    return MatrixPlanOut(
        multiple=multiple,
        priority_percentage=priority_percentage,
        priority_shop_ids=priority_ids,
        minimum_coverage_quantity=minimum_coverage_quantity(len(shops), multiple),
        grand_total=plan.grand_total,
        variants=[
            VariantPlanOut(
                color=variant.color,
                size=variant.size,
                target_quantity=variant.target_quantity,
                total_allocated=variant.total_allocated,
                allocations=[ShopAllocationOut.model_validate(item) for item in variant.allocations],
            )
            for variant in plan.variants
        ],
        items=[
            VariantQuantityIn(color=color, size=size, quantity=quantity)
            for color, size, quantity in plan.planning_items()
        ],
    )


@router.get("/defaults", response_model=DistributionDefaultsOut)
def distribution_defaults(db: Session = Depends(get_db)):
    shops = load_active_shops(db)
    multiple = settings.distribution_default_multiple
    return DistributionDefaultsOut(
        multiple=multiple,
        priority_percentage=settings.distribution_default_priority_percentage,
        quantity_per_variant=settings.distribution_default_quantity_per_variant,
        sales_lookback_days=settings.sales_lookback_days,
        active_shop_count=len(shops),
        minimum_coverage_quantity=minimum_coverage_quantity(len(shops), multiple),
        priority_shop_ids=default_priority_shop_ids(shops, settings.distribution_default_priority_shop_count),
    )


@router.get("/tendency", response_model=TendencyOut)
def sales_tendency(
    lookback_days: int | None = Query(default=None, ge=1, le=730),
    product_code: str | None = None,
    db: Session = Depends(get_db),
):
    tendency = compute_tendency(
        db,
        lookback_days=lookback_days,
        product_code=product_code.strip().upper() if product_code else None,
    )
    return TendencyOut(
        total_units=tendency.total_units,
        variants=sorted(
            (
                VariantPercentageOut(color=color, size=size, percentage=pct)
                for (color, size), pct in tendency.variant_percentages.items()
            ),
            key=lambda item: item.percentage,
            reverse=True,
        ),
        colors=sorted(
            (PercentageOut(key=color, percentage=pct) for color, pct in tendency.color_percentages.items()),
            key=lambda item: item.percentage,
            reverse=True,
        ),
        sizes=sorted(
            (PercentageOut(key=size, percentage=pct) for size, pct in tendency.size_percentages.items()),
            key=lambda item: item.percentage,
            reverse=True,
        ),
    )
