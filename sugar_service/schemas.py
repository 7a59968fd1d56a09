"""Modelos Pydantic (schemas) para validación de datos de entrada/salida de la API."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

# --- Schemas de Autenticación ---

class LoginRequest(BaseModel):
    username: str
    password: str


class SignupRequest(BaseModel):
    """Datos del formulario de registro. Edad y género se guardan como texto."""
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    name: str = ""
    age: str = ""
    gender: str = ""

    @field_validator("age", "name", "gender", mode="before")
    @classmethod
    def _as_text(cls, value):
        # El formulario puede mandar la edad como número
        if value is None:
            return ""
        return str(value)


class SessionUser(BaseModel):
    userId: str
    username: str


class AuthResponse(BaseModel):
    """Respuesta de login/signup: token de sesión y usuario."""
    sessionId: str
    user: SessionUser


# --- Schemas de Lecturas ---

class ReadingCreate(BaseModel):
    """
    Lectura enviada por el dashboard.
    La sesión viaja en el cuerpo; si falta, la petición es 401 y no 400.
    """
    session: Optional[str] = None
    date: str
    time: Optional[str] = None
    type: str
    value: float = Field(..., allow_inf_nan=False)


class ReadingOut(BaseModel):
    date: str
    time: str
    type: str
    value: float


class StatsResponse(BaseModel):
    totalReadings: int
    averageLevel: Optional[float] = None
    lastReading: Optional[float] = None
    daysTracked: int


# --- Respuestas genéricas ---

class SuccessResponse(BaseModel):
    success: bool = True

