"""Servicios de autenticación y de lecturas de glucosa."""

import logging
from typing import List, Optional, Tuple

from sugar_service.db import SheetsStore
from sugar_service.exceptions import (
    BadRequest,
    InvalidCredentials,
    StoreUnavailable,
    Unauthorized,
    UsernameTaken,
)
from sugar_service.models import READING_TYPES, Reading, SessionData, User
from sugar_service.sessions import SessionManager
from sugar_service.utils import default_time_for_type, verify_password

logger = logging.getLogger(__name__)


class AuthService:
    """
    Login, registro y cierre de sesión.
    No guarda estado entre peticiones salvo a través del SessionManager.
    """

    def __init__(self, store: SheetsStore, sessions: SessionManager):
        self.store = store
        self.sessions = sessions

    async def _find_user(self, username: str) -> Optional[User]:
        # Una caída de la hoja se trata igual que "usuario no encontrado"
        try:
            return await self.store.find_user_by_username(username)
        except StoreUnavailable as e:
            logger.warning(f"Búsqueda de usuario '{username}' degradada a 'no encontrado': {e}")
            return None

    async def login(self, username: str, password: str) -> Tuple[str, SessionData]:
        logger.info(f"Login attempt for user: {username}")
        user = await self._find_user(username)

        if not user or not verify_password(password, user.password_digest):
            logger.warning(f"Login failed for user: {username}")
            raise InvalidCredentials()

        session_id = self.sessions.create(user.id, user.username)
        logger.info(f"Login successful for user_id: {user.id}")
        return session_id, SessionData(user_id=user.id, username=user.username)

    async def signup(
        self,
        username: str,
        password: str,
        name: str = "",
        age: str = "",
        gender: str = "",
    ) -> Tuple[str, SessionData]:
        """
        Crea la cuenta e inicia sesión.

        La comprobación de existencia y la inserción no son atómicas: dos registros
        simultáneos con el mismo username pueden crear filas duplicadas.
        """
        logger.info(f"Registration attempt for username: {username}")
        if await self._find_user(username):
            logger.warning(f"Registration failed: username {username} already exists.")
            raise UsernameTaken()

        user = await self.store.insert_user(username, password, name=name, age=age, gender=gender)
        session_id = self.sessions.create(user.id, user.username)
        return session_id, SessionData(user_id=user.id, username=user.username)

    def logout(self, session_id: Optional[str]) -> None:
        self.sessions.delete(session_id)

    def current_user(self, session_id: Optional[str]) -> SessionData:
        session = self.sessions.lookup(session_id)
        if session is None:
            raise Unauthorized()
        return session


class ReadingService:
    def __init__(self, store: SheetsStore, sessions: SessionManager):
        self.store = store
        self.sessions = sessions

    def _resolve(self, session_id: Optional[str]) -> SessionData:
        session = self.sessions.lookup(session_id)
        if session is None:
            raise Unauthorized()
        return session

    async def add_reading(
        self,
        session_id: Optional[str],
        date: str,
        time: Optional[str],
        reading_type: str,
        value: float,
    ) -> bool:
        """
        Registra una lectura para el usuario de la sesión.

        El rango del valor (50-500 mg/dL) y el formato de la fecha no se validan
        aquí; solo la categoría, que determina la hora por defecto.
        """
        session = self._resolve(session_id)
        if reading_type not in READING_TYPES:
            raise BadRequest(f"Invalid reading type: {reading_type}")

        reading = Reading(
            user_id=session.user_id,
            date=date,
            time=time or default_time_for_type(reading_type),
            type=reading_type,
            value=value,
        )
        success = await self.store.append_reading(reading)
        if success:
            logger.info(f"Lectura {reading_type} registrada para user_id: {session.user_id}")
        return success

    async def list_readings(self, session_id: Optional[str]) -> List[Reading]:
        session = self._resolve(session_id)
        return await self.store.list_readings_for_user(session.user_id)

    async def stats(self, session_id: Optional[str]) -> dict:
        """Resumen del historial: total, promedio, última lectura y días registrados."""
        readings = await self.list_readings(session_id)
        if not readings:
            return {"totalReadings": 0, "averageLevel": None, "lastReading": None, "daysTracked": 0}

        values = [r.value for r in readings]
        return {
            "totalReadings": len(readings),
            "averageLevel": round(sum(values) / len(values), 1),
            "lastReading": readings[-1].value,
            "daysTracked": len({r.date for r in readings}),
        }
