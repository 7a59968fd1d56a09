"""Adaptador entre las operaciones del dominio y la hoja de cálculo (Users / SugarReadings).

Cada llamada lee o escribe directamente en la hoja: no hay caché ni paginación,
las consultas leen la tabla completa y filtran en memoria.
"""

import logging
from typing import List, Optional

import httpx
from prometheus_client import Counter

from sugar_service.config import READINGS_RANGE, USERS_RANGE, USE_IN_MEMORY_STORE
from sugar_service.exceptions import StoreUnavailable
from sugar_service.models import MalformedRow, Reading, User
from sugar_service.sheets import GoogleSheetsClient, InMemorySheetsClient, SheetsClient
from sugar_service.utils import generate_user_id, get_password_hash

# Configuración del logger
logger = logging.getLogger(__name__)

# Lecturas degradadas a "no encontrado"/lista vacía por una caída de la hoja
STORE_READ_FAILURES = Counter(
    "sugar_store_read_failures_total",
    "Reads from the spreadsheet that failed and were degraded to empty results",
    ["table"],
)


class SheetsStore:
    """Credential store: usuarios y lecturas de glucosa guardados en Google Sheets."""

    def __init__(self, client: SheetsClient):
        self.client = client

    async def _read(self, range_: str) -> List[list]:
        try:
            return await self.client.get_values(range_)
        except httpx.HTTPError as e:
            raise StoreUnavailable(f"Error leyendo {range_}: {e}") from e

    async def find_user_by_username(self, username: str) -> Optional[User]:
        """
        Busca el primer usuario cuyo username coincide exactamente.

        Raises:
            StoreUnavailable: si la lectura de la hoja falla.
        """
        rows = await self._read(USERS_RANGE)
        for row in rows:
            if len(row) > 1 and row[1] == username:
                try:
                    return User.from_row(row)
                except MalformedRow as e:
                    logger.warning(f"Fila de usuario ignorada: {e}")
        return None

    async def insert_user(self, username: str, password: str, name: str = "", age: str = "", gender: str = "") -> User:
        """
        Crea el usuario: genera el id, hashea la contraseña y añade una fila.

        Raises:
            StoreUnavailable: si la escritura falla.
        """
        user = User(
            id=generate_user_id(),
            username=username,
            password_digest=get_password_hash(password),
            name=name,
            age=age,
            gender=gender,
        )
        try:
            await self.client.append_values(USERS_RANGE, [user.to_row()])
        except httpx.HTTPError as e:
            logger.error(f"Error al crear el usuario {username}: {e}", exc_info=True)
            raise StoreUnavailable("Failed to create account") from e
        logger.info(f"Usuario creado con ID: {user.id} ({username})")
        return user

    async def append_reading(self, reading: Reading) -> bool:
        """Añade una lectura. Devuelve False si la hoja no aceptó la escritura."""
        try:
            await self.client.append_values(READINGS_RANGE, [reading.to_row()])
        except httpx.HTTPError as e:
            logger.error(f"Error al guardar la lectura de user_id {reading.user_id}: {e}", exc_info=True)
            return False
        return True

    async def list_readings_for_user(self, user_id: str) -> List[Reading]:
        """
        Lecturas de un usuario en el orden en que están en la hoja.
        Ante un fallo de lectura devuelve una lista vacía (se registra aparte).
        """
        try:
            rows = await self._read(READINGS_RANGE)
        except StoreUnavailable as e:
            STORE_READ_FAILURES.labels(table="SugarReadings").inc()
            logger.warning(f"Lecturas de user_id {user_id} degradadas a lista vacía: {e}")
            return []

        readings = []
        for row in rows:
            if not row or row[0] != user_id:
                continue
            try:
                readings.append(Reading.from_row(row))
            except MalformedRow as e:
                logger.warning(f"Fila de lectura ignorada para user_id {user_id}: {e}")
        return readings


def create_sheets_client() -> SheetsClient:
    """Cliente real de Google Sheets, o el de memoria si no hay hoja configurada."""
    if USE_IN_MEMORY_STORE:
        logger.info("Usando almacenamiento en memoria para Users/SugarReadings.")
        return InMemorySheetsClient()
    return GoogleSheetsClient()
