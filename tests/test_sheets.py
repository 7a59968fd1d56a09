# tests/test_sheets.py
import asyncio
import json
from urllib.parse import parse_qs

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwt

from sugar_service.sheets import JWT_BEARER_GRANT, GoogleSheetsClient, InMemorySheetsClient

TOKEN_URI = "https://oauth2.example/token"
API_URL = "https://sheets.example/v4"


@pytest.fixture(scope="module")
def rsa_keys():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    public_pem = key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return private_pem, public_pem


class FakeGoogle:
    """Simula el token endpoint y la API de valores de Sheets."""

    def __init__(self, public_pem):
        self.public_pem = public_pem
        self.token_requests = 0
        self.requests = []
        self.values = {"Users!A:F": [["1", "alice", "$2b$hash", "Alice", "30", "female"]]}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if str(request.url) == TOKEN_URI:
            self.token_requests += 1
            form = parse_qs(request.content.decode())
            assert form["grant_type"] == [JWT_BEARER_GRANT]
            claims = jwt.decode(form["assertion"][0], self.public_pem, algorithms=["RS256"], audience=TOKEN_URI)
            assert claims["iss"] == "svc@example.iam"
            assert claims["scope"] == "https://www.googleapis.com/auth/spreadsheets"
            return httpx.Response(200, json={"access_token": "tok-123", "expires_in": 3600})

        assert request.headers["Authorization"] == "Bearer tok-123"
        if request.method == "GET":
            range_ = request.url.path.rsplit("/values/", 1)[1]
            if range_ in self.values:
                return httpx.Response(200, json={"range": range_, "values": self.values[range_]})
            return httpx.Response(200, json={"range": range_})
        if request.method == "POST" and request.url.path.endswith(":append"):
            return httpx.Response(200, json={"updates": {"updatedRows": 1}})
        return httpx.Response(404)


def make_client(handler, private_pem):
    return GoogleSheetsClient(
        spreadsheet_id="sheet-1",
        client_email="svc@example.iam",
        private_key=private_pem,
        private_key_id="kid-1",
        token_uri=TOKEN_URI,
        api_url=API_URL,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def test_get_values_authenticates_and_reads_range(rsa_keys):
    private_pem, public_pem = rsa_keys
    google = FakeGoogle(public_pem)
    client = make_client(google, private_pem)

    async def run():
        users = await client.get_values("Users!A:F")
        empty = await client.get_values("SugarReadings!A:E")
        await client.aclose()
        return users, empty

    users, empty = asyncio.run(run())
    assert users == [["1", "alice", "$2b$hash", "Alice", "30", "female"]]
    assert empty == []
    # El token se reutiliza entre llamadas
    assert google.token_requests == 1
    assert google.requests[1].url.path == "/v4/spreadsheets/sheet-1/values/Users!A:F"


def test_append_values_posts_raw_rows(rsa_keys):
    private_pem, public_pem = rsa_keys
    google = FakeGoogle(public_pem)
    client = make_client(google, private_pem)

    asyncio.run(client.append_values("SugarReadings!A:E", [["1", "2025-01-02", "08:00", "fasting", 101.0]]))

    append_request = google.requests[-1]
    assert append_request.method == "POST"
    assert append_request.url.params["valueInputOption"] == "RAW"
    assert json.loads(append_request.content) == {"values": [["1", "2025-01-02", "08:00", "fasting", 101.0]]}


def test_http_errors_propagate(rsa_keys):
    private_pem, _ = rsa_keys

    def failing(request):
        return httpx.Response(503)

    client = make_client(failing, private_pem)
    with pytest.raises(httpx.HTTPError):
        asyncio.run(client.get_values("Users!A:F"))


def test_missing_credentials_raise_http_error():
    client = GoogleSheetsClient(
        spreadsheet_id="sheet-1",
        client_email=None,
        private_key=None,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200))),
    )
    with pytest.raises(httpx.HTTPError):
        asyncio.run(client.get_values("Users!A:F"))


def test_in_memory_client_outages():
    sheets = InMemorySheetsClient()
    asyncio.run(sheets.append_values("Users!A:F", [["1", "alice", "x"]]))
    assert asyncio.run(sheets.get_values("Users!A:F")) == [["1", "alice", "x"]]

    sheets.fail_reads = True
    with pytest.raises(httpx.HTTPError):
        asyncio.run(sheets.get_values("Users!A:F"))

    sheets.fail_writes = True
    with pytest.raises(httpx.HTTPError):
        asyncio.run(sheets.append_values("Users!A:F", [["2", "bob", "y"]]))
    assert sheets.append_calls == 1


def test_malformed_private_key_raises_http_error():
    """Una clave PEM inválida no se puede firmar: error de autenticación, no excepción de jose."""
    client = make_client(lambda r: httpx.Response(200, json={}), "your-private-key")
    with pytest.raises(httpx.HTTPError):
        asyncio.run(client.get_values("Users!A:F"))


def test_non_json_token_response_raises_http_error(rsa_keys):
    private_pem, _ = rsa_keys
    client = make_client(lambda r: httpx.Response(200, text="<html>login</html>"), private_pem)
    with pytest.raises(httpx.HTTPError):
        asyncio.run(client.get_values("Users!A:F"))


def test_non_json_values_response_raises_http_error(rsa_keys):
    private_pem, _ = rsa_keys

    def handler(request):
        if str(request.url) == TOKEN_URI:
            return httpx.Response(200, json={"access_token": "tok-123", "expires_in": 3600})
        return httpx.Response(200, text="<html>mantenimiento</html>")

    client = make_client(handler, private_pem)
    with pytest.raises(httpx.DecodingError):
        asyncio.run(client.get_values("SugarReadings!A:E"))
