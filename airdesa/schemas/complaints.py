from typing import Optional

from pydantic import BaseModel, Field


class ComplaintIn(BaseModel):
    reporter_name: str = ""
    customer_code: str = ""
    category: str = ""
    detail: str = ""
    whatsapp: str = ""
    photo_path: Optional[str] = None


class ComplaintStatusUpdate(BaseModel):
    status: str = Field(..., description="pending, processing or done")
    admin_note: Optional[str] = None
