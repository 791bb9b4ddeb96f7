import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .analyzers import build_registry
from .config import Settings, load_settings
from .diagnostics import failure_diagnostic
from .dispatcher import Dispatcher
from .errors import SnippetNotFound, ValidationError
from .store import SnippetStore
from .tools import resolve_tool

logger = logging.getLogger(__name__)

STATUS_TOOLS = ("eslint", "html-validate", "stylelint", "javac")


@dataclass
class ServiceContext:
    settings: Settings
    store: SnippetStore
    dispatcher: Dispatcher


class SnippetCreateRequest(BaseModel):
    content: Optional[str] = None
    language: Optional[str] = None


class AnalyzeRequest(BaseModel):
    code: Optional[str] = None
    language: Optional[str] = None


def get_context(request: Request) -> ServiceContext:
    return request.app.state.context


router = APIRouter()


@router.get("/status")
def api_status(ctx: ServiceContext = Depends(get_context)):
    overrides = ctx.settings.tool_overrides
    return {
        "languages": ctx.dispatcher.languages(),
        "tools": {name: resolve_tool(name, overrides) is not None for name in STATUS_TOOLS},
        "tool_timeout": ctx.settings.tool_timeout,
    }


@router.post("/snippets", status_code=201)
async def create_snippet(req: SnippetCreateRequest, ctx: ServiceContext = Depends(get_context)):
    if not req.content:
        return JSONResponse(status_code=400, content={"message": "Content cannot be empty."})
    try:
        snippet = await ctx.store.create(req.content, req.language)
    except Exception:
        logger.exception("Error creating snippet")
        return JSONResponse(status_code=500, content={"message": "Server error during snippet creation."})
    return {"id": snippet.unique_id}


@router.get("/snippets/{unique_id}")
async def get_snippet(unique_id: str, ctx: ServiceContext = Depends(get_context)):
    try:
        snippet = await ctx.store.get(unique_id)
    except SnippetNotFound:
        return JSONResponse(status_code=404, content={"message": "Snippet not found."})
    except Exception:
        logger.exception("Error fetching snippet")
        return JSONResponse(status_code=500, content={"message": "Server error during snippet retrieval."})
    return snippet.to_json()


@router.post("/analyze/code")
async def analyze_code(req: AnalyzeRequest, ctx: ServiceContext = Depends(get_context)):
    try:
        diags = await ctx.dispatcher.dispatch(req.code, req.language)
    except ValidationError as e:
        return JSONResponse(status_code=400, content={"error": e.message})
    except Exception as e:
        logger.exception(f"Error analyzing {req.language}")
        fallback = failure_diagnostic(f"Server error during {req.language} analysis: {e}")
        return JSONResponse(status_code=500, content=[fallback.model_dump(mode="json")])
    return [d.model_dump(mode="json") for d in diags]


def create_app(settings: Optional[Settings] = None, runner=None) -> FastAPI:
    """Build the API. ``runner`` replaces the subprocess runner (tests)."""
    settings = settings or load_settings()
    app = FastAPI(title="CodeBin API", version="1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allow_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": "Invalid request body."})

    @app.on_event("startup")
    def startup_event():
        store = SnippetStore(settings.db_path)
        store.open()
        registry = build_registry(settings, runner) if runner else build_registry(settings)
        app.state.context = ServiceContext(settings=settings, store=store, dispatcher=Dispatcher(registry))
        logger.info(f"CodeBin API started; analyzers: {', '.join(app.state.context.dispatcher.languages())}")

    @app.on_event("shutdown")
    def shutdown_event():
        ctx = getattr(app.state, "context", None)
        if ctx is not None:
            ctx.store.close()
        logger.info("CodeBin API stopped")

    app.include_router(router)
    # The web UI calls the same routes under /api
    app.include_router(router, prefix="/api")
    return app


app = create_app()
