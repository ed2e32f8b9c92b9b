from typing import Optional

from pydantic import BaseModel


class UnitSchema(BaseModel):
    id: int
    name: str
    smoobu_apartment_id: Optional[int] = None

    class Config:
        from_attributes = True


class OwnershipSchema(BaseModel):
    id: int
    unit_id: Optional[int] = None
    user_id: Optional[str] = None
    percentage_owned: int
    approval_status: Optional[str] = None

    class Config:
        from_attributes = True
