from pydantic import BaseModel, Field


class CustomerIn(BaseModel):
    name: str = Field("", description="Full name")
    phone: str = Field("", description="10-15 digits")
    address: str = Field("", description="Region first, comma separated")
    tariff_class: str = Field("R2", description="R1, R2, N1 or S1")
