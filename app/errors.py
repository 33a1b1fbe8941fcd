"""Erros do domínio de situação de veículos."""


class VehicleStatusError(Exception):
    """Base de todos os erros reportáveis ao chamador."""

    kind = "error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidInputError(VehicleStatusError):
    """Id malformado ou parâmetros de paginação ambíguos."""

    kind = "invalid_input"


class NotFoundError(VehicleStatusError):
    """Veículo (ou tipo de situação) inexistente."""

    kind = "not_found"


class ConflictError(VehicleStatusError):
    """A situação proposta já é a situação atual do veículo."""

    kind = "conflict"


class InvalidOdometerError(VehicleStatusError):
    """Km proposto viola as regras do histórico de odômetro.

    ``reason`` indica qual regra falhou:
    ``BACKFILL_EXCEEDS_CURRENT`` ou ``ODOMETER_DECREASE``.
    """

    kind = "invalid_odometer"

    BACKFILL_EXCEEDS_CURRENT = "backfill_exceeds_current"
    ODOMETER_DECREASE = "odometer_decrease"

    def __init__(self, message: str, *, reason: str):
        self.reason = reason
        super().__init__(message)


class TransitionFailedError(VehicleStatusError):
    """A gravação atômica falhou; nada foi persistido."""

    kind = "transition_failed"
