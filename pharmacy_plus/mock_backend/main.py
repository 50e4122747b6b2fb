# pharmacy_plus/mock_backend/main.py
# Development stand-in for the marketplace REST API. Run with:
#   uvicorn pharmacy_plus.mock_backend.main:app --port 5000
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from pharmacy_plus.core.config import Settings, settings as default_settings
from pharmacy_plus.mock_backend.routers import auth, catalog, coupons, orders, role_requests
from pharmacy_plus.mock_backend.store import MockStore


def create_app(store: Optional[MockStore] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    app = FastAPI(title=f"{settings.APP_NAME} dev backend")
    app.state.store = store if store is not None else MockStore.seeded()
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # dev only
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # errors go out as {"message": ...}, which is what the client reads
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse({"message": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
        return JSONResponse({"message": message}, status_code=422)

    app.include_router(auth.router, prefix="/api")
    app.include_router(catalog.router, prefix="/api")
    app.include_router(coupons.router, prefix="/api")
    app.include_router(orders.router, prefix="/api")
    app.include_router(role_requests.router, prefix="/api")

    @app.get("/")
    def root():
        return {"status": "ok", "app": settings.APP_NAME}

    return app


app = create_app()
