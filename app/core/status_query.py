"""Consulta do histórico de situações de um veículo (somente leitura)."""
from typing import Optional

from app.core.params import Paged, parse_page_request, parse_vehicle_id
from app.errors import NotFoundError
from app.models.status import StatusHistoryItem, StatusHistoryPage
from app.stores import SqlStatusHistoryStore, SqlVehicleStore, StatusHistoryStore, VehicleStore


class StatusQueryService:
    def __init__(
        self,
        session_factory,
        vehicles: Optional[VehicleStore] = None,
        statuses: Optional[StatusHistoryStore] = None,
    ):
        self._session_factory = session_factory
        self._vehicles = vehicles or SqlVehicleStore()
        self._statuses = statuses or SqlStatusHistoryStore()

    def list(self, vehicle_id, page=None, per_page=None) -> StatusHistoryPage:
        """Histórico do veículo, mais recente primeiro; paginado só se page e per_page vierem juntos."""
        id_vehicle = parse_vehicle_id(vehicle_id)
        request = parse_page_request(page, per_page)

        db = self._session_factory()
        try:
            if self._vehicles.find_by_id(db, id_vehicle) is None:
                raise NotFoundError("Veículo não encontrado")

            if isinstance(request, Paged):
                statuses, total = self._statuses.find_by_vehicle(
                    db, id_vehicle, offset=request.offset, limit=request.per_page
                )
            else:
                statuses, total = self._statuses.find_by_vehicle(db, id_vehicle)

            items = [
                StatusHistoryItem(
                    id=status.id,
                    name=status.status_type.name,
                    reason=status.status_type.specification or None,
                    observation=status.observation,
                    created_at=status.created_at,
                    effective_date=status.effective_date,
                    km=status.odometer_reading.km if status.odometer_reading else 0,
                )
                for status in statuses
            ]
        finally:
            db.close()

        paged = isinstance(request, Paged)
        return StatusHistoryPage(
            total=total,
            page=request.page if paged else None,
            per_page=request.per_page if paged else None,
            items=items,
        )
