"""Funciones de utilidad: hash de contraseñas, identificadores y horas por defecto."""

import logging
import secrets
import string
import time

from passlib.context import CryptContext

from sugar_service.config import BCRYPT_ROUNDS, SESSION_ID_LENGTH

# Configuración del logger
logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=BCRYPT_ROUNDS,
)

# Hora asignada a una lectura cuando el usuario no indica ninguna
DEFAULT_TIMES = {
    "fasting": "08:00",
    "evening": "18:00",
    "night": "22:00",
}

_SESSION_ALPHABET = string.ascii_lowercase + string.digits


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verifica una contraseña plana contra un hash almacenado."""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # Hash corrupto o vacío en la hoja: se trata como contraseña incorrecta
        logger.warning("Hash de contraseña con formato inválido en la hoja de usuarios.")
        return False


def get_password_hash(password: str) -> str:
    """Genera el hash de una contraseña plana usando bcrypt."""
    return pwd_context.hash(password)


def generate_session_id(length: int = SESSION_ID_LENGTH) -> str:
    """Genera un token de sesión alfanumérico aleatorio. No se comprueban colisiones."""
    return "".join(secrets.choice(_SESSION_ALPHABET) for _ in range(length))


def generate_user_id() -> str:
    """ID de usuario a partir de la marca de tiempo de creación (milisegundos)."""
    return str(int(time.time() * 1000))


def default_time_for_type(reading_type: str) -> str:
    """Hora por defecto (HH:MM) según la categoría de la lectura."""
    return DEFAULT_TIMES[reading_type]
