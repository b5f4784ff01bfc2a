"""
Request contracts validated at the API boundary.

Bodies use camelCase keys; models expose snake_case attributes.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, Literal, Union, List, Annotated

from pydantic import BaseModel, ConfigDict, EmailStr, Field, TypeAdapter, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StrictCamelModel(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='forbid')


# =====================================================
# CHECKOUT
# =====================================================

class CustomerInfo(StrictCamelModel):
    """Contact and shipping snapshot stored on the order."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: str = Field(..., min_length=5, max_length=20)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    pincode: str = Field(..., pattern=r'^\d{6}$')
    landmark: Optional[str] = None


class AppliedDiscount(CamelModel):
    id: int = Field(..., gt=0)
    code: Optional[str] = None


class _CheckoutBase(StrictCamelModel):
    amount: Optional[int] = Field(None, ge=0, description="Amount in paise")
    currency: str = Field('INR', min_length=3, max_length=3)
    customer_info: CustomerInfo
    applied_discount: Optional[AppliedDiscount] = None
    session_id: Optional[str] = Field(None, max_length=64)


class RazorpayCheckout(_CheckoutBase):
    payment_method: Literal['razorpay']
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0, description="Amount in paise")


class CodCheckout(_CheckoutBase):
    payment_method: Literal['cod']


CheckoutRequest = Annotated[Union[RazorpayCheckout, CodCheckout], Field(discriminator='payment_method')]
checkout_adapter = TypeAdapter(CheckoutRequest)


def parse_checkout(data) -> Union[RazorpayCheckout, CodCheckout]:
    """Validate a checkout body; the paymentMethod tag selects the contract."""
    return checkout_adapter.validate_python(data or {})


class InitializePaymentRequest(CamelModel):
    amount: int = Field(..., gt=0, description="Amount in paise")
    currency: str = Field('INR', min_length=3, max_length=3)
    receipt: Optional[str] = Field(None, max_length=40)


# =====================================================
# CART
# =====================================================

class AddToCartRequest(CamelModel):
    product_id: int = Field(..., gt=0)
    variant_id: int = Field(..., gt=0)
    quantity: int = Field(1, ge=1)


class UpdateCartItemRequest(CamelModel):
    quantity: int


# =====================================================
# ORDERS
# =====================================================

class TrackOrderRequest(CamelModel):
    order_number: str = Field(..., min_length=1, max_length=12)
    email: EmailStr


class CancellationRequest(CamelModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class RateProductRequest(CamelModel):
    product_id: int = Field(..., gt=0)
    rating: int = Field(..., ge=1, le=5)
    review_text: Optional[str] = Field(None, max_length=5000)


class StatusUpdateRequest(CamelModel):
    status: Literal['pending', 'confirmed', 'processing', 'shipped', 'delivered', 'cancelled']
    message: Optional[str] = Field(None, max_length=500)
    tracking_number: Optional[str] = Field(None, max_length=64)


class CancellationDecisionRequest(CamelModel):
    note: Optional[str] = Field(None, max_length=500)


# =====================================================
# STOCK
# =====================================================

class StockUpdateRequest(CamelModel):
    stock_quantity: int = Field(..., ge=0)


class StockCheckLine(CamelModel):
    variant_id: int = Field(..., gt=0)
    quantity: int = Field(..., ge=1)


class ValidateStockRequest(CamelModel):
    items: List[StockCheckLine] = Field(..., min_length=1)


# =====================================================
# DISCOUNTS
# =====================================================

class ValidateDiscountRequest(CamelModel):
    code: Optional[str] = None
    discount_id: Optional[int] = None
    cart_total: Decimal = Field(..., ge=0)
    
    @model_validator(mode='after')
    def _code_or_id(self):
        if not self.code and not self.discount_id:
            raise ValueError('Either code or discountId is required')
        return self


class ApplyDiscountRequest(CamelModel):
    discount_id: int = Field(..., gt=0)
    order_id: Optional[int] = Field(None, gt=0)


class DiscountCreateRequest(CamelModel):
    code: str = Field(..., min_length=2, max_length=50)
    description: Optional[str] = None
    type: Literal['percentage', 'fixed']
    value: Decimal = Field(..., gt=0)
    min_purchase: Decimal = Field(Decimal('0'), ge=0)
    usage_limit: Optional[int] = Field(None, ge=0)
    per_user: bool = False
    is_active: bool = True
    start_date: datetime
    end_date: datetime
    
    @model_validator(mode='after')
    def _percentage_range(self):
        if self.type == 'percentage' and self.value > 100:
            raise ValueError('Percentage discount cannot exceed 100')
        return self


# Columns an update may set back to NULL
DISCOUNT_CLEARABLE_FIELDS = frozenset({'description', 'usage_limit'})


class DiscountUpdateRequest(CamelModel):
    code: Optional[str] = Field(None, min_length=2, max_length=50)
    description: Optional[str] = None
    type: Optional[Literal['percentage', 'fixed']] = None
    value: Optional[Decimal] = Field(None, gt=0)
    min_purchase: Optional[Decimal] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, ge=0)
    per_user: Optional[bool] = None
    is_active: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @model_validator(mode='after')
    def _no_null_required_fields(self):
        cleared = sorted(
            field for field in self.model_fields_set
            if field not in DISCOUNT_CLEARABLE_FIELDS and getattr(self, field) is None
        )
        if cleared:
            raise ValueError(f"Fields cannot be null: {', '.join(to_camel(f) for f in cleared)}")
        return self


# =====================================================
# AUTH / SHIPPING
# =====================================================

class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ShippingRateRequest(CamelModel):
    from_pincode: str = Field(..., pattern=r'^\d{6}$')
    to_pincode: str = Field(..., pattern=r'^\d{6}$')
    weight: Decimal = Field(..., gt=0)
    cod_amount: Optional[Decimal] = Field(None, ge=0)
