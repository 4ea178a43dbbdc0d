import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.models.inventory import FactoryStock, Sale, SaleReturn, Shop
from app.schemas.inventory import (
    FactoryStockOut,
    FactoryStockUpsertRequest,
    SaleCreateRequest,
    SaleOut,
    SaleReturnCreateRequest,
    SaleReturnOut,
    ShopCreate,
    ShopOut,
    ShopUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inventory", tags=["Inventory"])


def _get_shop_or_404(db: Session, shop_id: int) -> Shop:
    shop = db.get(Shop, shop_id)
    if not shop:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Shop not found")
    return shop


def _commit_or_conflict(db: Session, detail: str) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("integrity conflict", extra={"detail": detail})
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail) from exc


@router.post("/shops", response_model=ShopOut, status_code=status.HTTP_201_CREATED)
def create_shop(payload: ShopCreate, db: Session = Depends(get_db)):
    shop = Shop(code=payload.code.strip().upper(), name=payload.name.strip(), location=payload.location)
    db.add(shop)
    _commit_or_conflict(db, "Shop code already exists")
    db.refresh(shop)
    return shop


@router.patch("/shops/{shop_id}", response_model=ShopOut)
def update_shop(shop_id: int, payload: ShopUpdate, db: Session = Depends(get_db)):
    shop = _get_shop_or_404(db, shop_id)

    if payload.code is not None:
        shop.code = payload.code.strip().upper()
    if payload.name is not None:
        shop.name = payload.name.strip()
    if payload.location is not None:
        shop.location = payload.location.strip() or None
    if payload.is_active is not None:
        shop.is_active = payload.is_active
    _commit_or_conflict(db, "Shop code already exists")
    db.refresh(shop)
    return shop


@router.delete("/shops/{shop_id}", response_model=ShopOut)
def archive_shop(shop_id: int, db: Session = Depends(get_db)):
    shop = _get_shop_or_404(db, shop_id)
    shop.is_active = False
    db.commit()
    db.refresh(shop)
    return shop


@router.post("/shops/{shop_id}/activate", response_model=ShopOut)
def activate_shop(shop_id: int, db: Session = Depends(get_db)):
    shop = _get_shop_or_404(db, shop_id)
    shop.is_active = True
    db.commit()
    db.refresh(shop)
    return shop


@router.get("/shops", response_model=list[ShopOut])
def list_shops(include_inactive: bool = False, db: Session = Depends(get_db)):
    query = select(Shop).order_by(Shop.name.asc())
    if not include_inactive:
        query = query.where(Shop.is_active.is_(True))
    return list(db.scalars(query).all())


@router.post("/sales", response_model=SaleOut, status_code=status.HTTP_201_CREATED)
def create_sale(payload: SaleCreateRequest, db: Session = Depends(get_db)):
    shop = _get_shop_or_404(db, payload.shop_id)
    if not shop.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Shop is archived")

    sale = Sale(
        shop_id=shop.id,
        product_code=payload.product_code.strip().upper(),
        color=payload.color.strip(),
        size=payload.size.strip(),
        quantity=payload.quantity,
        sold_at=payload.sold_at or datetime.utcnow(),
    )
    db.add(sale)
    db.commit()
    db.refresh(sale)
    return sale


@router.get("/sales", response_model=list[SaleOut])
def list_sales(
    shop_id: int | None = None,
    product_code: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    query = select(Sale).order_by(Sale.sold_at.desc(), Sale.id.desc())
    if shop_id is not None:
        query = query.where(Sale.shop_id == shop_id)
    if product_code is not None:
        query = query.where(Sale.product_code == product_code.strip().upper())
    if date_from is not None:
        query = query.where(Sale.sold_at >= date_from)
    if date_to is not None:
        query = query.where(Sale.sold_at <= date_to)
    return list(db.scalars(query.limit(limit)).all())


@router.post("/sales/{sale_id}/returns", response_model=SaleReturnOut, status_code=status.HTTP_201_CREATED)
def create_sale_return(sale_id: int, payload: SaleReturnCreateRequest, db: Session = Depends(get_db)):
    sale = db.get(Sale, sale_id)
    if not sale:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sale not found")

    already_returned = db.scalar(
        select(func.coalesce(func.sum(SaleReturn.quantity), 0)).where(SaleReturn.sale_id == sale.id)
    )
    returnable = sale.quantity - int(already_returned or 0)
    if payload.quantity > returnable:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Return quantity exceeds returnable quantity ({returnable})",
        )

    sale_return = SaleReturn(
        sale_id=sale.id,
        shop_id=sale.shop_id,
        quantity=payload.quantity,
        note=payload.note.strip() if payload.note else None,
    )
    db.add(sale_return)
    db.commit()
    db.refresh(sale_return)
    return sale_return


@router.put("/stocks", response_model=FactoryStockOut)
def upsert_stock(payload: FactoryStockUpsertRequest, db: Session = Depends(get_db)):
    product_code = payload.product_code.strip().upper()
    color = payload.color.strip()
    size = payload.size.strip()
    stock = db.scalar(
        select(FactoryStock).where(
            FactoryStock.product_code == product_code,
            FactoryStock.color == color,
            FactoryStock.size == size,
        )
    )
    if stock:
        stock.quantity_on_hand = payload.quantity_on_hand
    else:
        stock = FactoryStock(
            product_code=product_code,
            color=color,
            size=size,
            quantity_on_hand=payload.quantity_on_hand,
        )
        db.add(stock)
    _commit_or_conflict(db, "Stock record already exists for this variant")
    db.refresh(stock)
    return stock


@router.get("/stocks", response_model=list[FactoryStockOut])
def list_stocks(product_code: str | None = None, db: Session = Depends(get_db)):
    query = select(FactoryStock).order_by(
        FactoryStock.product_code.asc(),
        FactoryStock.color.asc(),
        FactoryStock.size.asc(),
    )
    if product_code is not None:
        query = query.where(FactoryStock.product_code == product_code.strip().upper())
    return list(db.scalars(query).all())
