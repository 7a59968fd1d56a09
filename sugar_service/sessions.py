"""Tabla de sesiones en memoria: token opaco -> {user_id, username}.

Vive lo que vive el proceso. Sin expiración, sin límite de tamaño y sin
persistencia; un reinicio cierra todas las sesiones.
"""

import logging
import threading
from typing import Dict, Optional

from sugar_service.models import SessionData
from sugar_service.utils import generate_session_id

logger = logging.getLogger(__name__)


class SessionManager:
    def __init__(self):
        self._sessions: Dict[str, SessionData] = {}
        self._lock = threading.Lock()

    def create(self, user_id: str, username: str) -> str:
        session_id = generate_session_id()
        with self._lock:
            self._sessions[session_id] = SessionData(user_id=user_id, username=username)
        logger.info(f"Sesión creada para user_id: {user_id}")
        return session_id

    def lookup(self, session_id: Optional[str]) -> Optional[SessionData]:
        if not session_id:
            return None
        with self._lock:
            return self._sessions.get(session_id)

    def delete(self, session_id: Optional[str]) -> None:
        """Idempotente: borrar una sesión inexistente no es un error."""
        if not session_id:
            return
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed:
            logger.info(f"Sesión cerrada para user_id: {removed.user_id}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
