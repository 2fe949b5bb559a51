from __future__ import annotations
import enum


class SubsidiaryType(str, enum.Enum):
    MATRIZ = 'MATRIZ'
    SUCURSAL = 'SUCURSAL'
    ALMACEN = 'ALMACEN'
    OFICINA = 'OFICINA'


class DayOfWeek(str, enum.Enum):
    LUNES = 'LUNES'
    MARTES = 'MARTES'
    MIERCOLES = 'MIERCOLES'
    JUEVES = 'JUEVES'
    VIERNES = 'VIERNES'
    SABADO = 'SABADO'
    DOMINGO = 'DOMINGO'

    @property
    def position(self) -> int:
        return WEEK_ORDER.index(self)


WEEK_ORDER = list(DayOfWeek)

DEFAULT_MAX_SUBSIDIARIES = 5
DEFAULT_MAX_USERS = 50
DEFAULT_MAX_ROLES = 20
