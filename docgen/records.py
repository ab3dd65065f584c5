"""Typed inputs for the template assemblers.

Field names are snake_case; camelCase keys from JSON callers are accepted
through the alias generator.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

DateLike = Union[datetime, date, str]


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)


class LineItem(_Record):
    description: str = Field(..., min_length=1, description="Line item description")
    quantity: float = Field(1, ge=0, description="Quantity")
    rate: float = Field(..., description="Unit rate in USD")
    amount: Optional[float] = Field(None, description="Line amount; quantity * rate when omitted")
    details: list[str] = Field(default_factory=list, description="Bullet details under the item")

    @model_validator(mode="after")
    def fill_amount(self) -> "LineItem":
        if self.amount is None:
            self.amount = round(self.quantity * self.rate, 2)
        return self


class Credit(_Record):
    deposit_invoice_number: str = Field(..., description="Deposit invoice the credit comes from")
    amount: float = Field(..., ge=0)


class InvoiceData(_Record):
    invoice_number: str = Field(..., min_length=1)
    issued_date: DateLike
    due_date: Optional[DateLike] = None
    client_name: str = Field(..., min_length=1)
    client_company: Optional[str] = None
    client_email: str = ""
    client_address: Optional[str] = None
    client_city_state_zip: Optional[str] = None
    client_phone: Optional[str] = None
    project_id: Optional[int] = None
    line_items: list[LineItem] = Field(..., min_length=1)
    subtotal: Optional[float] = None
    tax: float = Field(0, ge=0)
    discount: float = Field(0, ge=0)
    total: Optional[float] = None
    notes: Optional[str] = None
    terms: Optional[str] = None
    is_deposit: bool = False
    deposit_percentage: Optional[float] = Field(None, gt=0, le=100)
    credits: list[Credit] = Field(default_factory=list)
    total_credits: Optional[float] = Field(None, ge=0)

    @model_validator(mode="after")
    def fill_totals(self) -> "InvoiceData":
        """Derive subtotal/total/credits when the caller did not supply them."""
        if self.subtotal is None:
            self.subtotal = round(sum(item.amount or 0 for item in self.line_items), 2)
        if self.total is None:
            self.total = round(self.subtotal - self.discount + self.tax, 2)
        if self.total_credits is None:
            self.total_credits = round(sum(c.amount for c in self.credits), 2)
        return self

    @property
    def amount_due(self) -> float:
        return round((self.total or 0) - (self.total_credits or 0), 2)


class ProposalFeature(_Record):
    name: str = Field(..., min_length=1)
    price: float = 0
    is_addon: bool = Field(False, description="Priced add-on rather than included in the tier")

    @model_validator(mode="before")
    @classmethod
    def accept_plain_names(cls, value):
        if isinstance(value, str):
            return {"name": value}
        if isinstance(value, dict) and "name" not in value:
            for key in ("feature_name", "featureName"):
                if key in value:
                    return {**value, "name": value[key]}
        return value


class ProposalData(_Record):
    project_name: str = Field(..., min_length=1)
    project_type: str = ""
    client_name: str = "Client"
    client_email: str = ""
    company_name: Optional[str] = None
    selected_tier: str = Field(..., min_length=1)
    base_price: float = Field(..., ge=0)
    final_price: Optional[float] = Field(None, ge=0)
    features: list[ProposalFeature] = Field(default_factory=list)
    maintenance_option: Optional[str] = None
    client_notes: Optional[str] = None
    created_at: Optional[DateLike] = None

    @property
    def included_features(self) -> list[ProposalFeature]:
        return [f for f in self.features if not f.is_addon]

    @property
    def addons(self) -> list[ProposalFeature]:
        return [f for f in self.features if f.is_addon]

    @property
    def addons_total(self) -> float:
        return round(sum(f.price for f in self.addons), 2)

    @property
    def total(self) -> float:
        if self.final_price is not None:
            return self.final_price
        return round(self.base_price + self.addons_total, 2)


class ContractData(_Record):
    project_name: str = Field(..., min_length=1)
    client_name: str = "Client"
    client_email: str = ""
    company_name: Optional[str] = None
    project_type: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[DateLike] = None
    due_date: Optional[DateLike] = None
    timeline: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    deposit_amount: Optional[float] = Field(None, ge=0)
    content: Optional[str] = Field(None, description="Contract body in the markdown dialect")
    status: Optional[str] = Field(None, description="draft | sent | signed ...")
    created_at: Optional[DateLike] = None
    signed_at: Optional[DateLike] = None
    countersigned_at: Optional[DateLike] = None

    @property
    def is_signed(self) -> bool:
        return bool(self.signed_at)

    @property
    def watermark_label(self) -> Optional[str]:
        if self.is_signed:
            return None
        return "DRAFT" if not self.status or self.status == "draft" else "UNSIGNED"


class IntakeClientInfo(_Record):
    name: str = Field(..., min_length=1)
    email: str = ""
    company_name: Optional[str] = None
    project_for: Optional[str] = None


class IntakeProjectDetails(_Record):
    type: str = ""
    description: str = ""
    timeline: str = ""
    budget: str = ""
    features: list[str] = Field(default_factory=list)
    design_level: Optional[str] = None


class IntakeTechnicalInfo(_Record):
    tech_comfort: Optional[str] = None
    domain_hosting: Optional[str] = None


class IntakeData(_Record):
    submitted_at: Optional[DateLike] = None
    project_id: Optional[int] = None
    project_name: str = Field(..., min_length=1)
    client_info: IntakeClientInfo
    project_details: IntakeProjectDetails = Field(default_factory=IntakeProjectDetails)
    technical_info: Optional[IntakeTechnicalInfo] = None
    additional_info: Optional[str] = None

    @field_validator("additional_info")
    @classmethod
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value


class MarkdownData(_Record):
    title: str = "Document"
    content: str = Field(..., description="Markdown source")
