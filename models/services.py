"""Request/response payloads exchanged with the backend services."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel, to_pascal


class LeadRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    lead_payload: dict[str, Any] = Field(default_factory=dict)
    email: str
    status: str = "new"
    name: Optional[str] = None


class ApplicationPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    items_id: int
    booking_info: dict[str, Any]
    application_type: str
    status: str
    price: float
    quantity: int = 1
    leads_id: Optional[int] = None


class ProductData(BaseModel):
    name: str
    description: Optional[str] = None


class PriceData(BaseModel):
    currency: str
    product_data: ProductData
    unit_amount: int  # smallest currency unit


class CheckoutLineItem(BaseModel):
    price_data: PriceData
    quantity: float = 1

    @classmethod
    def build(
        cls,
        *,
        currency: str,
        name: str,
        amount: float,
        quantity: float = 1,
        description: str | None = None,
    ) -> "CheckoutLineItem":
        return cls(
            price_data=PriceData(
                currency=currency,
                product_data=ProductData(name=name, description=description),
                unit_amount=round(amount * 100),
            ),
            quantity=quantity,
        )


class CheckoutSessionRequest(BaseModel):
    line_items: list[CheckoutLineItem]
    success_url: str
    cancel_url: str
    mode: Literal["payment", "subscription"] = "payment"
    bookings_id: Optional[int] = None


class EmailMessage(BaseModel):
    """Outgoing message in the email service's PascalCase wire format."""

    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True)

    from_: str = Field(alias="From")
    to: str
    subject: str
    html_body: str
    message_stream: str = "broadcast"


class DecisionPreviewResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    approval_likelihood: float = Field(0, ge=0, le=100)
    risk_band: Literal["Low", "Medium", "High"] = "Medium"
    matched_nbfc_scheme: str = Field("", alias="matchedNBFCScheme")
    strengths: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)
    estimated: bool = False


__all__ = [
    "ApplicationPayload",
    "CheckoutLineItem",
    "CheckoutSessionRequest",
    "DecisionPreviewResponse",
    "EmailMessage",
    "LeadRequest",
    "PriceData",
    "ProductData",
]
