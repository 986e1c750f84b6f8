# citerag/app/api.py
from __future__ import annotations

from fastapi import Body, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from citerag.config import GlobalConfig
from citerag.app.container import build_container
from citerag.common.errors import FETCH_FAILED, INVALID_ID, INVALID_QUERY, SEARCH_FAILED, RetrievalError
import logging
import os
from typing import Any

logger = logging.getLogger("citerag.api")

CONFIG_ENV = "CITERAG_CONFIG"
DEFAULT_CONFIG_PATH = "/app/config/config.yaml"

ERROR_STATUS = {
    INVALID_QUERY: 400,
    INVALID_ID: 400,
    SEARCH_FAILED: 502,
    FETCH_FAILED: 500,
}


class SearchHit(BaseModel):
    id: str
    title: str
    url: str


class SearchResponse(BaseModel):
    results: list[SearchHit] = Field(default_factory=list)


class FetchResponse(BaseModel):
    id: str
    title: str
    text: str
    url: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    error: str
    message: str


def _error_response(err: RetrievalError) -> JSONResponse:
    return JSONResponse(status_code=ERROR_STATUS.get(err.code, 500), content=err.to_dict())


def _unexpected(route: str, e: Exception) -> JSONResponse:
    # Log full traceback to container logs for debugging
    logger.exception("Error while handling %s", route)
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "message": f"{type(e).__name__}: {e}"},
    )


def create_app(service: Any = None) -> FastAPI:
    """Create the HTTP adapter.

    Parameters
    ----------
    service : RetrievalService or None, optional
        Pre-built service. When ``None`` the service is built at startup from
        the YAML file named by ``CITERAG_CONFIG``.
    """
    app = FastAPI(title="citerag retrieval API", version="0.1.0")
    app.state.service = service

    @app.on_event("startup")
    def startup():
        if app.state.service is not None:
            return
        # Use env var so Docker can pass config location
        cfg_path = os.environ.get(CONFIG_ENV, DEFAULT_CONFIG_PATH)
        cfg = GlobalConfig.load(cfg_path)
        logging.basicConfig(level=cfg.log_level)
        container = build_container(cfg)
        app.state.service = container.service
        logger.info("Loaded index with %d chunks (model=%s)", len(container.index), container.index.model)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post(
        "/search",
        response_model=SearchResponse,
        responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    )
    def search(payload: Any = Body(default=None)):
        try:
            return app.state.service.search(payload)
        except RetrievalError as err:
            return _error_response(err)
        except Exception as e:
            return _unexpected("/search", e)

    @app.post(
        "/fetch",
        response_model=FetchResponse,
        responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    )
    def fetch(payload: Any = Body(default=None)):
        try:
            return app.state.service.fetch(payload)
        except RetrievalError as err:
            return _error_response(err)
        except Exception as e:
            return _unexpected("/fetch", e)

    return app


app = create_app()
