from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models.inventory import FactoryStock, Sale, SaleReturn, Shop
from app.services.distribution import ShopRef
from app.services.planning import Tendency


def load_active_shops(db: Session) -> list[ShopRef]:
    shops = db.scalars(select(Shop).where(Shop.is_active.is_(True)).order_by(Shop.id.asc())).all()
    return [ShopRef(id=str(shop.id), name=shop.name) for shop in shops]


def _window_start(lookback_days: int | None, now: datetime | None) -> datetime | None:
    if lookback_days is None:
        return None
    return (now or datetime.utcnow()) - timedelta(days=lookback_days)


def compute_shop_scores(db: Session, lookback_days: int, now: datetime | None = None) -> dict[str, float]:
    """Net units sold per shop (sales minus returns) within the lookback window."""
    scope_start = _window_start(lookback_days, now)

    sold = db.execute(
        select(Sale.shop_id, func.coalesce(func.sum(Sale.quantity), 0))
        .where(Sale.sold_at >= scope_start)
        .group_by(Sale.shop_id)
    ).all()
    returned = db.execute(
        select(SaleReturn.shop_id, func.coalesce(func.sum(SaleReturn.quantity), 0))
        .where(SaleReturn.returned_at >= scope_start)
        .group_by(SaleReturn.shop_id)
    ).all()

    net_qty: dict[str, int] = {}
    for shop_val, qty in sold:
        net_qty[str(shop_val)] = int(qty)
    for shop_val, qty in returned:
        key = str(shop_val)
        net_qty[key] = net_qty.get(key, 0) - int(qty)
    return {shop_id: float(max(0, qty)) for shop_id, qty in net_qty.items()}


def compute_tendency(
    db: Session,
    lookback_days: int | None = None,
    product_code: str | None = None,
    now: datetime | None = None,
) -> Tendency:
    scope_start = _window_start(lookback_days, now)

    sold_query = select(Sale.color, Sale.size, func.coalesce(func.sum(Sale.quantity), 0)).group_by(
        Sale.color, Sale.size
    )
    returned_query = (
        select(Sale.color, Sale.size, func.coalesce(func.sum(SaleReturn.quantity), 0))
        .join(Sale, Sale.id == SaleReturn.sale_id)
        .group_by(Sale.color, Sale.size)
    )
    if scope_start is not None:
        sold_query = sold_query.where(Sale.sold_at >= scope_start)
        returned_query = returned_query.where(SaleReturn.returned_at >= scope_start)
    if product_code is not None:
        sold_query = sold_query.where(Sale.product_code == product_code)
        returned_query = returned_query.where(Sale.product_code == product_code)

    units: dict[tuple[str, str], int] = {}
    for color, size, qty in db.execute(sold_query).all():
        units[(color, size)] = int(qty)
    for color, size, qty in db.execute(returned_query).all():
        units[(color, size)] = units.get((color, size), 0) - int(qty)
    units = {variant: qty for variant, qty in units.items() if qty > 0}

    total_units = sum(units.values())
    color_units: dict[str, int] = {}
    size_units: dict[str, int] = {}
    for (color, size), qty in units.items():
        color_units[color] = color_units.get(color, 0) + qty
        size_units[size] = size_units.get(size, 0) + qty

    def _percent(qty: int) -> float:
        return qty / total_units * 100 if total_units > 0 else 0.0

    return Tendency(
        total_units=total_units,
        variant_percentages={variant: _percent(qty) for variant, qty in units.items()},
        color_percentages={color: _percent(qty) for color, qty in color_units.items()},
        size_percentages={size: _percent(qty) for size, qty in size_units.items()},
    )


def load_variant_stock(db: Session, product_code: str | None = None) -> dict[tuple[str, str], int]:
    """Factory stock on hand per (colour, size), summed across product codes unless one is given."""
    query = select(FactoryStock.color, FactoryStock.size, func.coalesce(func.sum(FactoryStock.quantity_on_hand), 0))
    if product_code is not None:
        query = query.where(FactoryStock.product_code == product_code)
    rows = db.execute(query.group_by(FactoryStock.color, FactoryStock.size)).all()
    return {(color, size): int(qty) for color, size, qty in rows}
