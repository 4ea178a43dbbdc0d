from app.models.inventory import FactoryStock, Sale, SaleReturn, Shop

__all__ = [
    "FactoryStock",
    "Sale",
    "SaleReturn",
    "Shop",
]
