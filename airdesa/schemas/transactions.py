import datetime
from typing import Optional

from pydantic import BaseModel, Field


class TransactionIn(BaseModel):
    type: str = Field(..., description="income or expense")
    name: str
    category: str
    amount: int
    entry_date: Optional[datetime.date] = Field(None, alias="date")
    memo: Optional[str] = None
