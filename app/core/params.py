"""Conversão dos parâmetros brutos (strings vindas do transporte)."""
from dataclasses import dataclass
from typing import Optional, Union

from app.errors import InvalidInputError


def parse_vehicle_id(raw) -> int:
    """Converte o id do veículo; aceita apenas inteiros não negativos."""
    if isinstance(raw, bool):
        raise InvalidInputError("Id do veículo inválido")
    if isinstance(raw, int):
        if raw < 0:
            raise InvalidInputError("Id do veículo inválido")
        return raw

    text = str(raw).strip() if raw is not None else ""
    if not text.isascii() or not text.isdigit():
        raise InvalidInputError("Id do veículo inválido")
    return int(text)


@dataclass(frozen=True)
class Unpaged:
    """Histórico completo, sem paginação."""


@dataclass(frozen=True)
class Paged:
    page: int  # começa em 1
    per_page: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


PageRequest = Union[Paged, Unpaged]


def _parse_positive(raw) -> Optional[int]:
    if raw is None:
        return None
    text = str(raw).strip()
    if text == "":
        return None
    if not text.isascii() or not text.isdigit() or int(text) < 1:
        raise InvalidInputError("Parâmetros de paginação inválidos")
    return int(text)


def parse_page_request(page=None, per_page=None) -> PageRequest:
    """
    Monta o pedido de paginação: ou os dois parâmetros, ou nenhum.
    Informar apenas um deles é ambíguo e é rejeitado.
    """
    page_number = _parse_positive(page)
    per_page_number = _parse_positive(per_page)

    if page_number is None and per_page_number is None:
        return Unpaged()
    if page_number is None or per_page_number is None:
        raise InvalidInputError("Informe page e per_page juntos, ou nenhum dos dois")
    return Paged(page=page_number, per_page=per_page_number)
