"""
Analytics Result Models

Report Interface results. Every model is created fresh per call and
serializes to plain JSON, which is what the result cache stores.
"""

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class TrendLabel(str, Enum):
    """Direction of a fitted sales trend"""
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class RFMSegment(str, Enum):
    """Customer segment labels, best to worst"""
    CHAMPIONS = "Champions"
    LOYAL = "Loyal Customers"
    POTENTIAL = "Potential Loyalists"
    AT_RISK = "At Risk"
    LOST = "Lost"


class TimeSeriesPoint(BaseModel):
    """One aggregated value per calendar day"""
    day: date
    value: float


class TrendResult(BaseModel):
    """Linear fit of daily revenue"""
    slope: float = 0.0
    intercept: float = 0.0
    trend: TrendLabel = TrendLabel.STABLE
    prediction: float = 0.0
    r_squared: float = 0.0


class ForecastResult(BaseModel):
    """Short-term blended revenue forecast"""
    sma: float = 0.0
    ema: float = 0.0
    forecast: float = 0.0


class ABCEntry(BaseModel):
    """A product's ABC class and revenue share"""
    product_id: str
    name: str
    stock: int
    price: float
    revenue: float
    category: str
    revenue_percent: float


class ABCClassification(BaseModel):
    """Products partitioned into A, B and C classes"""
    A: List[ABCEntry] = Field(default_factory=list)
    B: List[ABCEntry] = Field(default_factory=list)
    C: List[ABCEntry] = Field(default_factory=list)

    @property
    def entries(self) -> List[ABCEntry]:
        """All entries in descending revenue order"""
        return self.A + self.B + self.C


class RFMScore(BaseModel):
    """Recency/frequency/monetary scoring of one customer"""
    customer_id: str
    name: str
    email: Optional[str] = None
    recency: float  # days since last purchase
    frequency: int
    monetary: float
    r_score: int
    f_score: int
    m_score: int
    rfm_score: int
    segment: RFMSegment


class CategoryMargin(BaseModel):
    category: str
    revenue: float
    cost: float
    profit_margin: float


class ProductMargin(BaseModel):
    product_id: str
    name: str
    units_sold: float
    revenue: float
    profit_margin: float


class ProfitMargins(BaseModel):
    """Margin percentages overall, by category and by top-selling product"""
    overall: float = 0.0
    by_category: List[CategoryMargin] = Field(default_factory=list)
    by_product: List[ProductMargin] = Field(default_factory=list)


class EOQResult(BaseModel):
    """Economic order quantity and reorder point"""
    eoq: int = 0
    reorder_point: int = 0
    average_demand: float = 0.0


class DailySales(BaseModel):
    sale_date: date
    revenue: float = 0.0
    transaction_count: int = 0
    avg_transaction_value: float = 0.0
    unique_customers: int = 0


class ProductPerformance(BaseModel):
    product_id: str
    name: str
    category: Optional[str] = None
    quantity_sold: float
    revenue: float
    profit: float


class SegmentSummary(BaseModel):
    segment: RFMSegment
    customer_count: int
    total_revenue: float
    avg_order_value: float


class LowStockProduct(BaseModel):
    product_id: str
    name: str
    stock: int
    min_stock: int


class HourlySales(BaseModel):
    day_of_week: int  # ISO: 1 = Monday
    hour_of_day: int
    transaction_count: int
    total_revenue: float


class DashboardMetrics(BaseModel):
    """Headline metrics for a company dashboard"""
    today: DailySales
    sales_trend: List[DailySales] = Field(default_factory=list)
    revenue_median: float = 0.0
    revenue_stddev: float = 0.0
    top_products: List[ProductPerformance] = Field(default_factory=list)
    customer_segments: List[SegmentSummary] = Field(default_factory=list)
    low_stock: List[LowStockProduct] = Field(default_factory=list)
