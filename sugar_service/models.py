"""Modelos de las filas de la hoja de cálculo (tablas 'Users' y 'SugarReadings').

Cada fila se valida al cruzar el adaptador: una fila incompleta o con un valor
no numérico se rechaza (``MalformedRow``) en lugar de propagar campos vacíos.
"""

import math
from typing import List, Literal

from pydantic import BaseModel, ConfigDict

ReadingType = Literal["fasting", "evening", "night"]
READING_TYPES = ("fasting", "evening", "night")


class MalformedRow(ValueError):
    """La fila leída de la hoja no respeta el schema de su tabla."""


def _cell(row: list, index: int) -> str:
    if index < len(row) and row[index] is not None:
        return str(row[index])
    return ""


class User(BaseModel):
    """
    Fila de la tabla 'Users'.
    Columnas: id, username, passwordDigest, name, age, gender.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    username: str
    password_digest: str
    name: str = ""
    age: str = ""
    gender: str = ""

    @classmethod
    def from_row(cls, row: list) -> "User":
        if len(row) < 3 or not _cell(row, 0) or not _cell(row, 1):
            raise MalformedRow(f"Fila de usuario incompleta ({len(row)} columnas)")
        return cls(
            id=_cell(row, 0),
            username=_cell(row, 1),
            password_digest=_cell(row, 2),
            name=_cell(row, 3),
            age=_cell(row, 4),
            gender=_cell(row, 5),
        )

    def to_row(self) -> List[str]:
        return [self.id, self.username, self.password_digest, self.name, self.age, self.gender]


class Reading(BaseModel):
    """
    Fila de la tabla 'SugarReadings'.
    Columnas: userId, date, time, type, value (mg/dL).
    """
    model_config = ConfigDict(frozen=True)

    user_id: str
    date: str
    time: str
    type: str
    value: float

    @classmethod
    def from_row(cls, row: list) -> "Reading":
        if len(row) < 5 or not _cell(row, 0):
            raise MalformedRow(f"Fila de lectura incompleta ({len(row)} columnas)")
        try:
            value = float(_cell(row, 4))
        except ValueError:
            raise MalformedRow(f"Valor de glucosa no numérico: {row[4]!r}")
        if not math.isfinite(value):
            raise MalformedRow(f"Valor de glucosa no finito: {row[4]!r}")
        return cls(
            user_id=_cell(row, 0),
            date=_cell(row, 1),
            time=_cell(row, 2),
            type=_cell(row, 3),
            value=value,
        )

    def to_row(self) -> list:
        return [self.user_id, self.date, self.time, self.type, self.value]


class SessionData(BaseModel):
    """Identidad asociada a un token de sesión. Solo vive en memoria."""
    model_config = ConfigDict(frozen=True)

    user_id: str
    username: str
