from typing import Optional
from pydantic import BaseModel, ConfigDict


class VehicleCreate(BaseModel):
    plate: str
    model: str


class Vehicle(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    plate: str
    model: str
    status_type_id: Optional[int] = None  # Situação atual (None = sem histórico)
    status_name: Optional[str] = None
