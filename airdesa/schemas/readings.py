from typing import Optional

from pydantic import BaseModel, Field


class ReadingCreate(BaseModel):
    customer_id: int
    period_year: int = Field(..., ge=1, le=9999)
    period_month: int = Field(..., ge=1, le=12)
    start_index: Optional[int] = Field(None, ge=0, description="Defaults to the previous period's end index")
    end_index: int = Field(..., ge=0)


class ReadingUpdate(BaseModel):
    end_index: int = Field(..., ge=0)
    start_index: Optional[int] = Field(None, ge=0)
