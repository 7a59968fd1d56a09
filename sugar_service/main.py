"""API del servicio Sugar Tracking: autenticación, lecturas de glucosa y estadísticas."""

import logging
import time
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException

from sugar_service import schemas
from sugar_service.config import ALLOWED_ORIGINS, DEFAULT_ORIGIN
from sugar_service.db import SheetsStore, create_sheets_client
from sugar_service.exceptions import StoreUnavailable, SugarServiceError
from sugar_service.services import AuthService, ReadingService
from sugar_service.sessions import SessionManager

# Configura logger
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# --- Métricas Prometheus ---
REQUEST_COUNT = Counter(
    "sugar_requests_total",
    "Total requests processed by Sugar Service",
    ["method", "endpoint", "status_code"]
)
REQUEST_LATENCY = Histogram(
    "sugar_request_latency_seconds",
    "Request latency in seconds for Sugar Service",
    ["endpoint"]
)


def cors_headers(origin: Optional[str]) -> dict:
    """
    Cabeceras CORS para el origen de la petición.
    Un origen fuera de la lista recibe el origen canónico, nunca el suyo.
    """
    allowed_origin = origin if origin in ALLOWED_ORIGINS else DEFAULT_ORIGIN
    return {
        "Access-Control-Allow-Origin": allowed_origin,
        "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Requested-With",
        "Access-Control-Allow-Credentials": "true",
        "Vary": "Origin",
    }


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# --- Dependencias ---

def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_reading_service(request: Request) -> ReadingService:
    return request.app.state.reading_service


router = APIRouter()


# --- Endpoints de Salud y Métricas ---
@router.get("/metrics", tags=["Monitoring"])
def metrics():
    """Exposes application metrics for Prometheus."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/health", tags=["Monitoring"])
def health_check():
    return {"status": "ok", "service": "sugar_service"}


# --- Endpoints de Autenticación ---

@router.get("/api/user", response_model=schemas.SessionUser, tags=["Authentication"])
def get_user(session: Optional[str] = Query(None), auth: AuthService = Depends(get_auth_service)):
    """Devuelve el usuario asociado a la sesión."""
    current = auth.current_user(session)
    return schemas.SessionUser(userId=current.user_id, username=current.username)


@router.post("/api/login", response_model=schemas.AuthResponse, tags=["Authentication"])
async def login(payload: schemas.LoginRequest, auth: AuthService = Depends(get_auth_service)):
    """
    Autentica con username y contraseña.
    Usuario inexistente y contraseña incorrecta devuelven el mismo 401.
    """
    session_id, user = await auth.login(payload.username, payload.password)
    return schemas.AuthResponse(
        sessionId=session_id,
        user=schemas.SessionUser(userId=user.user_id, username=user.username),
    )


@router.post("/api/signup", response_model=schemas.AuthResponse, tags=["Authentication"])
async def signup(payload: schemas.SignupRequest, auth: AuthService = Depends(get_auth_service)):
    """Registra un usuario nuevo y abre su sesión."""
    session_id, user = await auth.signup(
        payload.username,
        payload.password,
        name=payload.name,
        age=payload.age,
        gender=payload.gender,
    )
    return schemas.AuthResponse(
        sessionId=session_id,
        user=schemas.SessionUser(userId=user.user_id, username=user.username),
    )


@router.post("/api/logout", response_model=schemas.SuccessResponse, tags=["Authentication"])
def logout(session: Optional[str] = Query(None), auth: AuthService = Depends(get_auth_service)):
    """Cierra la sesión. Siempre responde éxito, exista o no."""
    auth.logout(session)
    return schemas.SuccessResponse()


# --- Endpoints de Lecturas ---

@router.get("/api/readings", response_model=List[schemas.ReadingOut], tags=["Readings"])
async def list_readings(
    session: Optional[str] = Query(None),
    readings: ReadingService = Depends(get_reading_service),
):
    rows = await readings.list_readings(session)
    return [schemas.ReadingOut(date=r.date, time=r.time, type=r.type, value=r.value) for r in rows]


@router.post("/api/readings", response_model=schemas.SuccessResponse, tags=["Readings"])
async def add_reading(
    payload: schemas.ReadingCreate,
    readings: ReadingService = Depends(get_reading_service),
):
    """Registra una lectura. La sesión viaja en el cuerpo ('session')."""
    success = await readings.add_reading(
        payload.session,
        payload.date,
        payload.time,
        payload.type,
        payload.value,
    )
    if not success:
        raise StoreUnavailable("Failed to add reading")
    return schemas.SuccessResponse()


@router.get("/api/stats", response_model=schemas.StatsResponse, tags=["Readings"])
async def reading_stats(
    session: Optional[str] = Query(None),
    readings: ReadingService = Depends(get_reading_service),
):
    return await readings.stats(session)


def create_app(store: Optional[SheetsStore] = None, sessions: Optional[SessionManager] = None) -> FastAPI:
    """
    Construye la aplicación con su propio SessionManager y adaptador de la hoja.
    Los tests inyectan un SheetsStore sobre InMemorySheetsClient.
    """
    if store is None:
        store = SheetsStore(create_sheets_client())
    if sessions is None:
        sessions = SessionManager()

    app = FastAPI(
        title="Sugar Service - Sugar Tracking",
        description="Handles user accounts, sessions and blood-sugar readings stored in Google Sheets.",
        version="1.0.0"
    )
    app.state.store = store
    app.state.sessions = sessions
    app.state.auth_service = AuthService(store, sessions)
    app.state.reading_service = ReadingService(store, sessions)

    # --- Middleware para CORS, Métricas y errores no controlados ---
    @app.middleware("http")
    async def combined_middleware(request: Request, call_next):
        start_time = time.time()
        response = None
        endpoint = request.url.path
        origin = request.headers.get("origin")

        try:
            if request.method == "OPTIONS":
                # Preflight: sin cuerpo, solo cabeceras CORS
                response = Response(status_code=status.HTTP_200_OK)
            else:
                response = await call_next(request)
        except Exception as exc:
            logger.error(f"Unhandled exception during request processing ({endpoint}): {exc}", exc_info=True)
            response = error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
        finally:
            latency = time.time() - start_time
            final_status_code = getattr(response, 'status_code', 500)
            REQUEST_LATENCY.labels(endpoint=endpoint).observe(latency)
            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=endpoint,
                status_code=final_status_code
            ).inc()

        response.headers.update(cors_headers(origin))
        return response

    # --- Manejadores de errores ---
    @app.exception_handler(SugarServiceError)
    async def sugar_error_handler(request: Request, exc: SugarServiceError):
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        campos = [".".join(str(p) for p in e.get("loc", ())) for e in exc.errors()]
        logger.warning(f"Cuerpo inválido en {request.url.path}: {campos}")
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid request body")

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        # Ruta conocida con método incorrecto también es 404
        if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
            return error_response(status.HTTP_404_NOT_FOUND, "Not found")
        return error_response(exc.status_code, str(exc.detail))

    app.include_router(router)

    # --- Manejador de Cierre ---
    @app.on_event("shutdown")
    async def shutdown_event():
        """Cierra el cliente HTTP de Google Sheets al apagar la aplicación."""
        await store.client.aclose()

    return app


app = create_app()
