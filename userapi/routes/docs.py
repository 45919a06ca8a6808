"""
Users API — Interactive Documentation
======================================

What:  Serves Swagger UI at /api-docs and the API description it renders.
Why:   The API description is a standalone file (userapi/openapi.json) kept
       next to the code instead of being generated from handler signatures,
       so it can be reviewed and versioned as a contract of its own.
How:   The JSON file is read once on first request and cached. FastAPI's
       built-in /docs and /openapi.json are disabled in main.py.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

from fastapi import APIRouter
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import HTMLResponse, JSONResponse

OPENAPI_PATH = Path(__file__).resolve().parent.parent / "openapi.json"
OPENAPI_URL = "/api-docs/openapi.json"

router = APIRouter(tags=["Documentation"], include_in_schema=False)


@lru_cache(maxsize=1)
def load_openapi_document() -> Dict[str, Any]:
    """Read and parse the API description shipped with the package."""
    with OPENAPI_PATH.open(encoding="utf-8") as fh:
        return json.load(fh)


@router.get(OPENAPI_URL)
async def openapi_document() -> JSONResponse:
    return JSONResponse(load_openapi_document())


@router.get("/api-docs", response_class=HTMLResponse)
async def swagger_ui() -> HTMLResponse:
    title = load_openapi_document()["info"]["title"]
    return get_swagger_ui_html(openapi_url=OPENAPI_URL, title=f"{title} - Docs")
