from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Iterator, List, Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .config import ImportSettings, configure_logging, get_settings
from .errors import ConfigurationError, ImportAbortedError
from .importer import PessoaImporter
from .models import HealthResponse, ImportErrorEnvelope, ImportRequest, ImportResult
from .rules import CSV_TEMPLATE, TEMPLATE_FILENAME
from .store import PessoaStore, SupabaseStore

logger = logging.getLogger(__name__)

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    configure_logging()
    yield


app = FastAPI(
    title="kerigma-import",
    description="Person CSV import for Kerigma Hub",
    version="0.1.0",
    lifespan=_lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=CORS_ALLOW_HEADERS,
)


def _error_response(message: str, status_code: int) -> JSONResponse:
    envelope = ImportErrorEnvelope.from_message(message)
    return JSONResponse(status_code=status_code, content=envelope.model_dump(exclude_none=True))


@app.exception_handler(ImportAbortedError)
async def _import_aborted(request: Request, exc: ImportAbortedError) -> JSONResponse:
    logger.error("Import aborted: %s", exc)
    return _error_response(str(exc), exc.status_code)


@app.exception_handler(ConfigurationError)
async def _misconfigured(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("Import service misconfigured: %s", exc)
    return _error_response(str(exc), 500)


@app.exception_handler(RequestValidationError)
async def _bad_body(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response("Corpo da requisição inválido", 400)


def get_import_settings() -> ImportSettings:
    return get_settings()


def get_store_factory(
    authorization: Optional[str] = Header(default=None),
    settings: ImportSettings = Depends(get_import_settings),
) -> Iterator[Callable[[], PessoaStore]]:
    """
    Yield a builder for the Supabase store instead of the store itself, so
    upload preconditions are checked before store settings are required.
    """
    created: List[SupabaseStore] = []

    def build() -> PessoaStore:
        store = SupabaseStore(settings=settings, authorization=authorization)
        created.append(store)
        return store

    try:
        yield build
    finally:
        for store in created:
            store.close()


@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}


@app.get("/import-pessoas/template", response_class=Response)
def import_template():
    return Response(
        content=CSV_TEMPLATE,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{TEMPLATE_FILENAME}"'},
    )


@app.post(
    "/import-pessoas",
    response_model=ImportResult,
    responses={400: {"model": ImportErrorEnvelope}, 500: {"model": ImportErrorEnvelope}},
)
def import_pessoas(
    body: ImportRequest,
    store_factory: Callable[[], PessoaStore] = Depends(get_store_factory),
    settings: ImportSettings = Depends(get_import_settings),
):
    importer = PessoaImporter(
        store_factory=store_factory,
        placeholder_domain=settings.placeholder_email_domain,
    )
    return importer.import_upload(body)
