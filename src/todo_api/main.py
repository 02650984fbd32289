import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from .errors import NotFoundError, StoreUnavailableError, ValidationError
from .settings import get_settings
from .routers import todos as todos_router

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "todos",
        "description": "Create, list (sorted and paginated), complete and delete todo items.",
    },
]

_settings = get_settings()

app = FastAPI(
    title="Todo Service",
    description="Backend API service for managing todos stored in a flat JSON snapshot file.",
    version="0.1.0",
    openapi_tags=openapi_tags,
)

# Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
allow_all = (_settings.cors_allow_origins == ["*"]) or (len(_settings.cors_allow_origins) == 0)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all else _settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Report request validation errors as 400.

    Response format:
        {"message": [... pydantic/fastapi error details ...]}
    """
    return JSONResponse(status_code=400, content={"message": jsonable_encoder(exc.errors())})


@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Domain validation errors share the request validation shape."""
    return JSONResponse(status_code=400, content={"message": jsonable_encoder(exc.errors)})


@app.exception_handler(NotFoundError)
async def not_found_exception_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"message": "Todo not found"})


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_exception_handler(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    logger.error("Store unavailable while handling %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"message": "Todo store unavailable"})


# PUBLIC_INTERFACE
@app.get("/", summary="Health Check", tags=["health"], response_class=PlainTextResponse)
def health_check() -> str:
    """
    Health check endpoint.

    Returns:
        A plain-text greeting.
    """
    return "Hello World!"


# Include routers
app.include_router(todos_router.router)


# PUBLIC_INTERFACE
def run_server() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Todo service listening on %s:%d (store: %s)", settings.host, settings.port, settings.store_path)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run_server()
