"""testgen — FastAPI app that turns scenario descriptions into Selenium tests.

Exposes /generate-test (LLM relay + extraction), /format (formatting chain)
and /download (formatted code as a .java attachment), plus /health.

Run with:  uvicorn testgen.main:create_app --factory
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from testgen.artifact import download_filename
from testgen.config import EngineConfig, load_config
from testgen.errors import GeneratorError, ValidationError
from testgen.formatting import format_code
from testgen.llm import build_chat_model
from testgen.runtime import LLMFactory, generate_test
from testgen.schemas import CodeRequest, ExtractedResult, FormattedCode, ScenarioRequest

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_config(request: Request) -> EngineConfig:
    return request.app.state.config


def get_llm_factory(request: Request) -> LLMFactory:
    return request.app.state.llm_factory


def get_formatter_transport(request: Request) -> httpx.AsyncBaseTransport | None:
    return request.app.state.formatter_transport


def _unexpected(action: str, e: Exception) -> GeneratorError:
    logger.error(f"{action} failed: {e}", exc_info=True)
    return GeneratorError("An unexpected error occurred")


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(
    config: EngineConfig | None = None,
    llm_factory: LLMFactory | None = None,
    formatter_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the app. ``config`` defaults to ``load_config()``; the factory and
    transport arguments swap out the outbound LLM and formatter calls."""
    config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if config.llm.api_key is None:
            logger.warning(
                f"{config.llm.api_key_env} is not set; /generate-test will fail "
                f"until it is configured"
            )
        logger.info(
            f"testgen started (model={config.llm.model}, "
            f"origins={config.allowed_origins}, "
            f"formatters={config.formatting.chain}, "
            f"remote_formatter={'set' if config.formatting.remote_url else 'unset'})"
        )
        yield
        logger.info("testgen shutting down")

    app = FastAPI(title="Selenium AI Test Case Generator", version="0.1.0", lifespan=lifespan)
    app.state.config = config
    app.state.llm_factory = llm_factory or build_chat_model
    app.state.formatter_transport = formatter_transport

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(GeneratorError)
    async def generator_error_handler(request: Request, exc: GeneratorError):
        return JSONResponse(status_code=exc.status_code, content=exc.payload())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        return JSONResponse(status_code=400, content={"error": f"Invalid request: {details}"})

    # -----------------------------------------------------------------------
    # Generator endpoints
    # -----------------------------------------------------------------------

    @app.options("/{path:path}")
    async def preflight(path: str):
        """Answer bare OPTIONS probes; browser preflights are handled by CORSMiddleware."""
        return PlainTextResponse("ok", headers=PREFLIGHT_HEADERS)

    @app.post("/generate-test", response_model=ExtractedResult)
    async def generate(
        body: ScenarioRequest,
        config: EngineConfig = Depends(get_config),
        llm_factory: LLMFactory = Depends(get_llm_factory),
    ):
        """Send the scenario to the model and return its steps and code."""
        try:
            return await generate_test(body, config, llm_factory)
        except GeneratorError:
            raise
        except Exception as e:
            raise _unexpected("Generation", e) from e

    @app.post("/format", response_model=FormattedCode)
    async def format_endpoint(
        body: CodeRequest,
        config: EngineConfig = Depends(get_config),
        transport: httpx.AsyncBaseTransport | None = Depends(get_formatter_transport),
    ):
        """Pretty-print generated code. Degrades instead of failing."""
        if not body.code.strip():
            raise ValidationError("Code is required")
        return await format_code(body.code, config.formatting, transport=transport)

    @app.post("/download")
    async def download(body: CodeRequest):
        """Serve already formatted code as a .java attachment."""
        if not body.code.strip():
            raise ValidationError("Code is required")
        filename = download_filename(body.code)
        return PlainTextResponse(
            body.code,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    # -----------------------------------------------------------------------
    # Operational endpoints
    # -----------------------------------------------------------------------

    @app.get("/health")
    async def health(config: EngineConfig = Depends(get_config)):
        """Liveness check."""
        return {
            "status": "healthy",
            "model": config.llm.model,
            "api_key_configured": config.llm.api_key is not None,
            "remote_formatter_configured": bool(config.formatting.remote_url),
        }

    return app
