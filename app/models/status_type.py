from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class StatusTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    specification: Optional[str] = Field(None, description="Motivo / detalhamento da situação.")


class StatusType(StatusTypeCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
