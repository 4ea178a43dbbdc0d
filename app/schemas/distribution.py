from pydantic import BaseModel, Field, field_validator


class ShopIn(BaseModel):
    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=120)


class DistributionPreviewRequest(BaseModel):
    total_quantity: float = Field(ge=0)
    priority_percentage: float = Field(ge=0, le=100)
    multiple: int = Field(ge=1)
    priority_shop_ids: list[str] = Field(default_factory=list)
    shops: list[ShopIn] = Field(default_factory=list)
    shop_scores: dict[str, float] | None = None

    @field_validator("shops")
    @classmethod
    def _unique_shop_ids(cls, shops: list[ShopIn]) -> list[ShopIn]:
        seen: set[str] = set()
        for shop in shops:
            if shop.id in seen:
                raise ValueError(f"Duplicate shop id: {shop.id}")
            seen.add(shop.id)
        return shops


class ShopDistributionRequest(BaseModel):
    total_quantity: float = Field(ge=0)
    priority_percentage: float | None = Field(default=None, ge=0, le=100)
    multiple: int | None = Field(default=None, ge=1)
    priority_shop_ids: list[int] | None = None
    use_sales_history: bool = False
    lookback_days: int | None = Field(default=None, ge=1, le=730)


class ShopAllocationOut(BaseModel):
    shop_id: str
    shop_name: str
    target: float
    packs: int
    allocation: int
    remainder: float
    is_priority: bool

    model_config = {"from_attributes": True}


class DistributionOut(BaseModel):
    total_quantity: float
    multiple: int
    priority_percentage: float
    total_allocated: int
    unallocated: float
    priority_allocated: int
    regular_allocated: int
    allocations: list[ShopAllocationOut]


class VariantQuantityIn(BaseModel):
    color: str = Field(min_length=1, max_length=64)
    size: str = Field(min_length=1, max_length=32)
    quantity: int = Field(ge=0)


class MatrixPlanRequest(BaseModel):
    colors: list[str] = Field(min_length=1)
    sizes: list[str] = Field(min_length=1)
    quantity_per_variant: int | None = Field(default=None, ge=0)
    multiple: int | None = Field(default=None, ge=1)
    priority_percentage: float | None = Field(default=None, ge=0, le=100)
    priority_shop_ids: list[int] | None = None
    manual_quantities: list[VariantQuantityIn] = Field(default_factory=list)
    apply_trends: bool = False
    total_project_quantity: int | None = Field(default=None, ge=0)
    balance_stock: bool = False
    product_code: str | None = Field(default=None, max_length=64)
    use_sales_history: bool = False
    lookback_days: int | None = Field(default=None, ge=1, le=730)


class VariantPlanOut(BaseModel):
    color: str
    size: str
    target_quantity: int
    total_allocated: int
    allocations: list[ShopAllocationOut]


class MatrixPlanOut(BaseModel):
    multiple: int
    priority_percentage: float
    priority_shop_ids: list[str]
    minimum_coverage_quantity: int
    grand_total: int
    variants: list[VariantPlanOut]
    items: list[VariantQuantityIn]


class DistributionDefaultsOut(BaseModel):
    multiple: int
    priority_percentage: float
    quantity_per_variant: int
    sales_lookback_days: int
    active_shop_count: int
    minimum_coverage_quantity: int
    priority_shop_ids: list[str]


class PercentageOut(BaseModel):
    key: str
    percentage: float


class VariantPercentageOut(BaseModel):
    color: str
    size: str
    percentage: float


class TendencyOut(BaseModel):
    total_units: int
    variants: list[VariantPercentageOut]
    colors: list[PercentageOut]
    sizes: list[PercentageOut]
