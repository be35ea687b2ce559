from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from reporting.core.observability import configure_logging
from reporting.core.settings import Settings, load_settings
from reporting.infrastructure import PostgrestDataAPI, configure_data_api, reset_data_api
from reporting.routes import reports


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level, json_format=settings.log_json)

    client: PostgrestDataAPI | None = None
    if settings.supabase_url and settings.supabase_key:
        client = PostgrestDataAPI(settings.supabase_url, settings.supabase_key, timeout=settings.http_timeout)
        configure_data_api(client)
    else:
        reset_data_api()

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        if client is not None:
            await client.aclose()

    app = FastAPI(title="Construction Reporting API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(reports.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Construction Reporting API",
                "docs": "/docs",
                "health": "/api/reports/entities",
                "backend": "postgrest" if client is not None else "memory",
            }
        )

    return app


app = create_app()
