"""Pydantic models for the checkout pipeline.

Request models (CartLine, CheckoutContext) are supplied by the till and frozen
once checkout starts. Records and results are built fresh per checkout and
never persisted.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Dict

ROLL_CATEGORIES = ("preroll",)
ROLL_TIER_RULE = "Pre-Roll"


# --- Request ---

class ConversionRule(BaseModel):
    """How many inventory units one sold unit consumes (input per output)."""
    model_config = ConfigDict(frozen=True)

    input_amount: float
    input_unit: str = ""
    output_amount: float
    output_unit: str = ""
    description: str = ""


class SplitPayment(BaseModel):
    model_config = ConfigDict(frozen=True)

    method: str
    amount: float


class CartLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: int
    variation_id: Optional[int] = None
    name: str = ""
    sku: Optional[str] = None
    quantity: float
    unit_price: float = 0.0
    price_override: Optional[float] = None
    discount_percentage: Optional[float] = None
    conversion_rule: Optional[ConversionRule] = None

    # Pricing tier metadata, forwarded to the order as-is
    category: Optional[str] = None
    tier_label: Optional[str] = None
    tier_rule_name: Optional[str] = None
    tier_price: Optional[float] = None
    tier_quantity: Optional[float] = None
    tier_category: Optional[str] = None

    @property
    def effective_price(self) -> float:
        price = self.price_override if self.price_override is not None else self.unit_price
        if self.discount_percentage:
            price = price * (1 - self.discount_percentage / 100)
        return price

    @property
    def line_total(self) -> float:
        return self.effective_price * self.quantity

    @property
    def is_roll_product(self) -> bool:
        """Roll-type products must always carry a conversion rule."""
        if self.category and self.category.lower() in ROLL_CATEGORIES:
            return True
        if self.tier_rule_name:
            return self.tier_rule_name == ROLL_TIER_RULE or "roll" in self.tier_rule_name.lower()
        return False

    @property
    def has_pricing_tier(self) -> bool:
        return self.tier_label is not None or self.tier_rule_name is not None


class CheckoutContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    location_id: int
    location_name: str = ""
    employee_id: int
    employee_name: str = ""
    customer_id: Optional[int] = None
    payment_method: str
    payment_method_title: str = ""
    cash_received: Optional[float] = None
    change_given: Optional[float] = None
    split_payments: List[SplitPayment] = []
    tax_rate: float = 0.0
    tax_name: str = ""
    terminal_id: Optional[int] = None
    terminal_name: Optional[str] = None
    transaction_ref: Optional[str] = None


class CheckoutRequest(BaseModel):
    lines: List[CartLine]
    context: CheckoutContext


class InventoryRefreshRequest(BaseModel):
    product_ids: List[int]
    location_id: int


# --- Inventory ---

class InventoryKey(BaseModel):
    """One stock counter. The same product has an independent counter per location."""
    model_config = ConfigDict(frozen=True)

    product_id: int
    location_id: int
    variation_id: int = 0

    @classmethod
    def for_line(cls, line: CartLine, location_id: int) -> "InventoryKey":
        return cls(
            product_id=line.product_id,
            location_id=location_id,
            variation_id=line.variation_id or 0,
        )

    def query_params(self) -> Dict[str, str]:
        params = {"product_id": str(self.product_id), "location_id": str(self.location_id)}
        if self.variation_id:
            params["variation_id"] = str(self.variation_id)
        return params

    def __str__(self) -> str:
        return f"product={self.product_id} location={self.location_id} variation={self.variation_id}"


class DeductionRecord(BaseModel):
    """A committed stock write. Writing ``old_stock`` back undoes it."""
    model_config = ConfigDict(frozen=True)

    key: InventoryKey
    line_index: int
    name: str = ""
    quantity_sold: float
    quantity_deducted: float
    old_stock: float
    new_stock: float
    conversion_applied: bool = False
    conversion_capped: bool = False
    oversold: bool = False


class OversellEvent(BaseModel):
    key: InventoryKey
    line_index: int
    current_stock: float
    deduction: float


class ConversionCapEvent(BaseModel):
    line_index: int
    product_id: int
    calculated: float
    capped_to: float


class BatchDeductionResult(BaseModel):
    success: bool
    records: List[DeductionRecord] = []
    failed_line_index: Optional[int] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    rolled_back: List[DeductionRecord] = []
    rollback_failed: List[DeductionRecord] = []
    rollback_error: Optional[str] = None
    oversell_events: List[OversellEvent] = []
    capped_conversions: List[ConversionCapEvent] = []


# --- Result ---

STATUS_COMPLETED = "completed"
STATUS_INVALID_INPUT = "invalid_input"
STATUS_ORDER_FAILED = "order_failed"
STATUS_DEDUCTION_FAILED = "deduction_failed"

SEVERITY_INFO = "info"
SEVERITY_WARNING = "warning"
SEVERITY_ERROR = "error"


class CheckoutResult(BaseModel):
    """
    Terminal result of one checkout attempt.

    ``order_id`` is set whenever the order was created, including when stock
    deduction failed afterwards (status ``deduction_failed``, severity ``warning``).
    """
    success: bool
    status: str
    severity: str = SEVERITY_INFO
    order_id: Optional[int] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    deductions: List[DeductionRecord] = []
    failed_line_index: Optional[int] = None
    rolled_back: List[DeductionRecord] = []
    rollback_failed: List[DeductionRecord] = []
    rollback_error: Optional[str] = None
    requires_manual_reconciliation: bool = False
    oversell_events: List[OversellEvent] = []
    capped_conversions: List[ConversionCapEvent] = []

    @property
    def order_created(self) -> bool:
        return self.order_id is not None


class InventoryRefreshResult(BaseModel):
    location_id: int
    stock: Dict[int, float] = Field(default_factory=dict)
