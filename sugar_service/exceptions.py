"""Errores de dominio del servicio y su código HTTP asociado."""

from typing import Optional

from fastapi import status


class SugarServiceError(Exception):
    """Base de todos los errores que el router traduce a una respuesta HTTP."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class Unauthorized(SugarServiceError):
    """Sesión ausente o desconocida."""

    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Unauthorized"


class InvalidCredentials(SugarServiceError):
    """Usuario inexistente o contraseña incorrecta (indistinguibles a propósito)."""

    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid credentials"


class UsernameTaken(SugarServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Username already exists"


class BadRequest(SugarServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid request body"


class StoreUnavailable(SugarServiceError):
    """La hoja de cálculo no respondió o devolvió un error."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Store unavailable"
