"""Cliente de la API REST de Google Sheets (v4) y doble en memoria para pruebas.

Solo se usan dos primitivas: leer un rango completo y añadir filas al final.
"""

import asyncio
import logging
import time
from typing import Dict, List, Optional, Protocol
from urllib.parse import quote

import httpx
from jose import jwt
from jose.exceptions import JOSEError

from sugar_service.config import (
    GOOGLE_CLIENT_EMAIL,
    GOOGLE_PRIVATE_KEY,
    GOOGLE_PRIVATE_KEY_ID,
    GOOGLE_SHEETS_ID,
    GOOGLE_TOKEN_URI,
    SHEETS_API_URL,
    SHEETS_SCOPE,
    SHEETS_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
TOKEN_LIFETIME_SECONDS = 3600
TOKEN_REFRESH_MARGIN_SECONDS = 60


class SheetsAuthError(httpx.HTTPError):
    """No se pudo obtener un access token para la cuenta de servicio."""


class SheetsClient(Protocol):
    """Operaciones que el adaptador necesita de la hoja de cálculo."""

    async def get_values(self, range_: str) -> List[list]:
        ...

    async def append_values(self, range_: str, rows: List[list]) -> None:
        ...

    async def aclose(self) -> None:
        ...


def _sheet_name(range_: str) -> str:
    return range_.split("!", 1)[0]


def _json_body(response: httpx.Response) -> dict:
    """Cuerpo JSON de una respuesta 2xx; cualquier otra cosa es un error de decodificación."""
    try:
        payload = response.json()
    except ValueError as e:
        raise httpx.DecodingError(f"Respuesta no JSON de {response.request.url}: {e}", request=response.request)
    if not isinstance(payload, dict):
        raise httpx.DecodingError(f"Respuesta JSON inesperada de {response.request.url}", request=response.request)
    return payload


class GoogleSheetsClient:
    """
    Cliente asíncrono para Google Sheets autenticado con una cuenta de servicio.

    El access token se obtiene con el flujo JWT bearer: se firma un JWT RS256
    con la clave privada de la cuenta y se canjea en el token endpoint.
    """

    def __init__(
        self,
        spreadsheet_id: str = GOOGLE_SHEETS_ID,
        client_email: str = GOOGLE_CLIENT_EMAIL,
        private_key: str = GOOGLE_PRIVATE_KEY,
        private_key_id: Optional[str] = GOOGLE_PRIVATE_KEY_ID,
        token_uri: str = GOOGLE_TOKEN_URI,
        api_url: str = SHEETS_API_URL,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.spreadsheet_id = spreadsheet_id
        self.client_email = client_email
        self.private_key = private_key
        self.private_key_id = private_key_id
        self.token_uri = token_uri
        self.api_url = api_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=SHEETS_TIMEOUT_SECONDS)
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_lock = asyncio.Lock()

    def _build_assertion(self, now: int) -> str:
        claims = {
            "iss": self.client_email,
            "scope": SHEETS_SCOPE,
            "aud": self.token_uri,
            "iat": now,
            "exp": now + TOKEN_LIFETIME_SECONDS,
        }
        headers = {"kid": self.private_key_id} if self.private_key_id else None
        try:
            return jwt.encode(claims, self.private_key, algorithm="RS256", headers=headers)
        except (JOSEError, ValueError) as e:
            raise SheetsAuthError(f"No se pudo firmar el JWT de la cuenta de servicio: {e}")

    async def _get_access_token(self) -> str:
        async with self._token_lock:
            if self._access_token and time.time() < self._token_expires_at - TOKEN_REFRESH_MARGIN_SECONDS:
                return self._access_token

            if not self.client_email or not self.private_key:
                raise SheetsAuthError("Credenciales de la cuenta de servicio no configuradas")

            now = int(time.time())
            assertion = self._build_assertion(now)
            response = await self._client.post(
                self.token_uri,
                data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
            )
            response.raise_for_status()
            payload = _json_body(response)
            if "access_token" not in payload:
                raise SheetsAuthError("Respuesta del token endpoint sin 'access_token'")

            self._access_token = payload["access_token"]
            try:
                expires_in = int(payload.get("expires_in", TOKEN_LIFETIME_SECONDS))
            except (TypeError, ValueError):
                raise SheetsAuthError("Campo 'expires_in' inválido en la respuesta del token endpoint")
            self._token_expires_at = now + expires_in
            logger.info("Access token de Google Sheets renovado.")
            return self._access_token

    def _values_url(self, range_: str) -> str:
        return f"{self.api_url}/spreadsheets/{self.spreadsheet_id}/values/{quote(range_, safe='')}"

    async def get_values(self, range_: str) -> List[list]:
        """Lee el rango completo. Una hoja vacía no trae el campo 'values'."""
        token = await self._get_access_token()
        response = await self._client.get(
            self._values_url(range_),
            headers={"Authorization": f"Bearer {token}"},
        )
        response.raise_for_status()
        return _json_body(response).get("values", [])

    async def append_values(self, range_: str, rows: List[list]) -> None:
        token = await self._get_access_token()
        response = await self._client.post(
            f"{self._values_url(range_)}:append",
            params={"valueInputOption": "RAW"},
            json={"values": rows},
            headers={"Authorization": f"Bearer {token}"},
        )
        response.raise_for_status()

    async def aclose(self) -> None:
        await self._client.aclose()


class InMemorySheetsClient:
    """
    Doble en memoria de la hoja de cálculo para desarrollo y tests.

    ``fail_reads`` / ``fail_writes`` simulan una caída de la API.
    """

    def __init__(self, sheets: Optional[Dict[str, List[list]]] = None):
        self.sheets: Dict[str, List[list]] = sheets if sheets is not None else {}
        self.fail_reads = False
        self.fail_writes = False
        self.append_calls = 0

    def _outage(self, range_: str) -> httpx.HTTPError:
        request = httpx.Request("GET", f"memory://{range_}")
        return httpx.ConnectError("Hoja en memoria no disponible (simulado)", request=request)

    async def get_values(self, range_: str) -> List[list]:
        # Cede el control como lo haría una llamada de red real
        await asyncio.sleep(0)
        if self.fail_reads:
            raise self._outage(range_)
        return [list(row) for row in self.sheets.get(_sheet_name(range_), [])]

    async def append_values(self, range_: str, rows: List[list]) -> None:
        await asyncio.sleep(0)
        if self.fail_writes:
            raise self._outage(range_)
        self.append_calls += 1
        self.sheets.setdefault(_sheet_name(range_), []).extend(list(row) for row in rows)

    def rows(self, sheet: str) -> List[list]:
        return self.sheets.get(sheet, [])

    async def aclose(self) -> None:
        return None
