"""HTTP surface for texspan.

Endpoints:
- ``GET /health`` -> ``{"status": "ok"}``
- ``POST /validate-latex`` with ``{"text": ..., "delimiters"?: [...], "macros"?: {...}}``
  -> 200 ``{"valid": true}`` or 400 ``{"valid": false, "errors": [...], "error": ...}``

A body without a string ``text`` is rejected with 400 before any validation
runs. Bodies whose declared size exceeds ``ServerSettings.body_limit`` get
413. Unknown routes return 404 ``{"error": "Not Found"}``.

Run with ``texspan serve``.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field, StrictStr
from starlette.exceptions import HTTPException as StarletteHTTPException

from texspan import __version__, validate_latex
from texspan.config import ServerSettings
from texspan.delimiters import DelimiterSpec
from texspan.engine import MathEngine
from texspan.errors import DelimiterTableError
from texspan.serialization import to_dict
from texspan.utils.logger import get_logger

logger = get_logger(__name__)

TEXT_REQUIRED = 'Body must include a "text" string'


class DelimiterModel(BaseModel):
    """Delimiter entry; accepts open/close/display or left/right/displayMode."""

    open: StrictStr = Field(validation_alias=AliasChoices("open", "left"))
    close: StrictStr = Field(default="", validation_alias=AliasChoices("close", "right"))
    display: bool = Field(
        default=False, validation_alias=AliasChoices("display", "displayMode")
    )

    def to_spec(self) -> DelimiterSpec:
        return DelimiterSpec(open=self.open, close=self.close, display=self.display)


class ValidateLatexRequest(BaseModel):
    text: StrictStr
    delimiters: list[DelimiterModel] | None = None
    macros: dict[str, str] | None = None


def _invalid_body(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse({"valid": False, "error": message}, status_code=status_code)


def create_app(
    settings: ServerSettings | None = None,
    *,
    engine: MathEngine | None = None,
) -> FastAPI:
    """Create the FastAPI app.

    Args:
        settings: Server settings (read from the environment if None)
        engine: Math engine override (defaults to the library default)
    """
    settings = settings or ServerSettings.from_env()
    app = FastAPI(title="texspan", version=__version__)
    app.state.settings = settings

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next: Any) -> Any:
        declared = request.headers.get("content-length")
        if declared is None:
            # Chunked upload: the size is only known once the body is read
            size = len(await request.body())
        elif declared.isdigit():
            size = int(declared)
        else:
            size = 0
        if size > settings.body_limit:
            logger.info("Rejected %s byte body (limit %s)", size, settings.body_limit)
            return _invalid_body("Request body too large", status_code=413)
        return await call_next(request)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.debug("Rejected request body: %s", exc.errors())
        return _invalid_body(TEXT_REQUIRED)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return JSONResponse({"error": "Not Found"}, status_code=404)
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/validate-latex")
    def validate_latex_endpoint(payload: ValidateLatexRequest) -> JSONResponse:
        try:
            delimiters = (
                [d.to_spec() for d in payload.delimiters]
                if payload.delimiters is not None
                else None
            )
            result = validate_latex(payload.text, delimiters, payload.macros, engine=engine)
        except DelimiterTableError as exc:
            return _invalid_body(str(exc))

        if result.is_valid:
            return JSONResponse({"valid": True})
        return JSONResponse(
            {
                "valid": False,
                "errors": [to_dict(error) for error in result.errors],
                "error": f"Found {len(result.errors)} LaTeX error(s)",
            },
            status_code=400,
        )

    return app

