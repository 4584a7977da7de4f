from pydantic import BaseModel, Field


class InstallmentCreate(BaseModel):
    amount: int = Field(..., description="Amount paid towards the bill's arrears")


class StatusUpdate(BaseModel):
    status: str = Field(..., description="paid or unpaid")


class ArrearsAdd(BaseModel):
    amount: int = Field(..., description="Extra arrears layered on the stored value")
