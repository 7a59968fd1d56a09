"""Configuración del servicio leída desde variables de entorno (.env)."""

import os
import logging
from typing import Optional

from dotenv import load_dotenv

# Carga variables de entorno desde el archivo .env
load_dotenv()

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _split_list(raw: str) -> list:
    return [item.strip() for item in raw.split(",") if item.strip()]


DEFAULT_ALLOWED_ORIGINS = "https://sugartracking.vercel.app,http://localhost:3000,https://localhost:3000"


def parse_allowed_origins(raw: Optional[str]) -> list:
    """Lista de orígenes CORS. Una lista vacía vuelve a los orígenes por defecto."""
    origins = _split_list(raw if raw is not None else DEFAULT_ALLOWED_ORIGINS)
    if not origins:
        logger.error("ALLOWED_ORIGINS está vacía. Se usará la lista de orígenes por defecto.")
        origins = _split_list(DEFAULT_ALLOWED_ORIGINS)
    return origins


# --- Google Sheets ---
GOOGLE_SHEETS_ID = os.getenv("GOOGLE_SHEETS_ID")
GOOGLE_CLIENT_EMAIL = os.getenv("GOOGLE_CLIENT_EMAIL")
# Vercel/.env guardan la clave con "\n" literales
GOOGLE_PRIVATE_KEY = (os.getenv("GOOGLE_PRIVATE_KEY") or "").replace("\\n", "\n") or None
GOOGLE_PRIVATE_KEY_ID = os.getenv("GOOGLE_PRIVATE_KEY_ID")
GOOGLE_TOKEN_URI = os.getenv("GOOGLE_TOKEN_URI", "https://oauth2.googleapis.com/token")
SHEETS_API_URL = os.getenv("SHEETS_API_URL", "https://sheets.googleapis.com/v4")
SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"
SHEETS_TIMEOUT_SECONDS = float(os.getenv("SHEETS_TIMEOUT_SECONDS", 15))

USERS_RANGE = "Users!A:F"
READINGS_RANGE = "SugarReadings!A:E"

# Sin hoja configurada no hay a dónde escribir: se usa el backend en memoria
USE_IN_MEMORY_STORE = _env_bool("USE_IN_MEMORY_STORE") or not GOOGLE_SHEETS_ID

if not GOOGLE_SHEETS_ID:
    logger.warning("GOOGLE_SHEETS_ID no está definida. Se usará el almacenamiento en memoria.")
elif not USE_IN_MEMORY_STORE and not (GOOGLE_CLIENT_EMAIL and GOOGLE_PRIVATE_KEY):
    logger.error("Faltan credenciales de la cuenta de servicio (GOOGLE_CLIENT_EMAIL / GOOGLE_PRIVATE_KEY).")

# --- CORS ---
ALLOWED_ORIGINS = parse_allowed_origins(os.getenv("ALLOWED_ORIGINS"))
DEFAULT_ORIGIN = os.getenv("DEFAULT_ORIGIN") or ALLOWED_ORIGINS[0]

# --- Seguridad ---
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 10))
SESSION_ID_LENGTH = int(os.getenv("SESSION_ID_LENGTH", 16))
