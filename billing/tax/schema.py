"""Tax rate table models."""

from decimal import Decimal

from pydantic import BaseModel, Field


class StateTaxRate(BaseModel):
    """Company-specific GST rate for one state."""

    state_name: str = Field(..., description="State name as entered in company settings")
    gst_rate_percent: Decimal = Field(..., ge=0, description="Blended GST rate in percent")
    pincode: str = Field("", description="Reference pincode for the state")


class CompanySettings(BaseModel):
    """Company tax settings as served by the settings collaborator.

    Attributes:
        states: Company-specific state rate table, in the order it was configured
        default_gst_rate: Company-wide fallback rate in percent
        company_state: State the company is registered in (display only)
    """

    states: list[StateTaxRate] = Field(default_factory=list)
    default_gst_rate: Decimal = Field(Decimal("18"), ge=0)
    company_state: str = ""
