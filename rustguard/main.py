"""
RustGuard FastAPI Application.

In-memory endpoints over the same engine the CLI uses:
  POST /scan     → ordered violations with severity/kind counts
  POST /fix      → conservative rewrites and per-violation outcomes
  POST /analyze  → AI analysis report + orchestrator instructions
  GET  /health   → {"status": "ok"}
"""

from __future__ import annotations

import logging

from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from rustguard.api.routes.analyze import router as analyze_router
from rustguard.api.routes.fix import router as fix_router
from rustguard.api.routes.health import router as health_router
from rustguard.api.routes.scan import router as scan_router
from rustguard.config import settings
from rustguard.engine.report_builder import TOOL_VERSION

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("rustguard")

app = FastAPI(
    title="RustGuard",
    description="Rust coding-standards scanner with conservative auto-fix and AI remediation reports",
    version=TOOL_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(scan_router)
app.include_router(fix_router)
app.include_router(analyze_router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(f"Validation error on {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})
