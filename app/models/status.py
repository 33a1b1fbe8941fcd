from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

KM_MAX = 2**63 - 1


# ----------------------------------------------------
# 1. ENTRADA: nova situação proposta para um veículo
# ----------------------------------------------------
class NewStatus(BaseModel):
    """
    Dados de uma transição de situação.
    O km e a data ancoram a mudança no histórico do veículo.
    """
    status_type_id: int = Field(..., description="Tipo de situação proposto.")

    effective_date: date = Field(..., description="Data em que a situação passa a valer (YYYY-MM-DD).")

    # Teto = maior INTEGER do banco (64 bits)
    km: int = Field(..., ge=0, le=KM_MAX, description="Leitura do odômetro no momento da mudança.")

    observation: Optional[str] = Field(None, description="Observação livre sobre a mudança.")


# ----------------------------------------------------
# 2. RESULTADO: situação gravada
# Reflete o que foi de fato persistido (km e data vêm dos registros criados).
# ----------------------------------------------------
class StatusRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    vehicle_id: int
    status_type_id: int
    effective_date: date
    km: int
    observation: Optional[str] = None
    created_by: int
    created_at: datetime
    odometer_reading_id: int
    status_date_id: int


# ----------------------------------------------------
# 3. LEITURA: histórico formatado
# ----------------------------------------------------
class StatusHistoryItem(BaseModel):
    id: int
    name: str
    reason: Optional[str] = None
    observation: Optional[str] = None
    created_at: datetime
    effective_date: date
    km: int


class StatusHistoryPage(BaseModel):
    total: int = Field(..., description="Quantidade total de situações do veículo.")
    page: Optional[int] = None  # None quando sem paginação
    per_page: Optional[int] = None
    items: List[StatusHistoryItem]
