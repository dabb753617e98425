"""
FastAPI Application Module

HTTP surface of the Sanyai chat backend. Messages are answered by hosted
models on the Hugging Face router, optionally grounded in SerpApi web search
results, and conversation history is kept in a relational store.

Endpoints:
- POST /chat          send a message, creating the chat on first use
- GET  /chat/{id}     replay a chat's messages
- GET  /chats         list recent chats
- POST /smart-prompt  analyze and shorten a draft prompt
- GET  /metrics       Prometheus metrics
"""

import time
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from prometheus_client import CollectorRegistry, Counter, generate_latest
from pydantic import BaseModel
from structlog import get_logger

from ..config import get_settings
from ..repositories.base import Repository
from ..repositories.factory import create_repository
from ..services.chat import ChatService
from ..services.llm import LLMService
from ..services.search import SearchService
from ..services.smart_prompt import SmartPromptService

# Registry for isolated metric collection
CUSTOM_REGISTRY = CollectorRegistry()

REQUESTS = Counter("requests_total", "Total requests by endpoint", ["endpoint"], registry=CUSTOM_REGISTRY)
ERRORS = Counter("errors_total", "Total errors by endpoint", ["endpoint"], registry=CUSTOM_REGISTRY)
PROCESSING_TIME = Counter(
    "processing_time_seconds", "Total processing time by endpoint", ["endpoint"], registry=CUSTOM_REGISTRY
)

HEALTH_MESSAGE = "Sanyai API is running. Use POST /chat to interact."
INVALID_BODY_MESSAGE = "Invalid request body"

logger = get_logger()


class ChatRequest(BaseModel):
    """Body of POST /chat"""
    message: Optional[str] = None
    chat_id: Optional[str] = None
    depth: Optional[str] = None
    webSearch: Optional[bool] = False


class SmartPromptRequest(BaseModel):
    """Body of POST /smart-prompt"""
    prompt: Optional[str] = None


@lru_cache
def get_repository() -> Optional[Repository]:
    """Returns the chat history store, or None when persistence is disabled"""
    return create_repository(get_settings())


@lru_cache
def get_llm_service() -> LLMService:
    """Returns the language model service"""
    return LLMService(get_settings())


@lru_cache
def get_search_service() -> SearchService:
    """Returns the web search service"""
    return SearchService(get_settings())


def get_chat_service(
    repository: Optional[Repository] = Depends(get_repository),
    llm_service: LLMService = Depends(get_llm_service),
    search_service: SearchService = Depends(get_search_service),
) -> ChatService:
    """Returns the chat orchestrator"""
    return ChatService(repository, llm_service, search_service)


def get_smart_prompt_service(llm_service: LLMService = Depends(get_llm_service)) -> SmartPromptService:
    """Returns the prompt optimization service"""
    return SmartPromptService(llm_service)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Logs startup configuration and releases HTTP clients on shutdown"""
    settings = get_settings()
    logger.info(
        "application_startup_complete",
        hf_model=settings.hf_model,
        database="connected" if get_repository() is not None else "disconnected",
        web_search=bool(settings.serp_api_key),
    )

    yield

    if get_search_service.cache_info().currsize:
        await get_search_service().aclose()
    logger.info("application_shutdown_complete")


app = FastAPI(
    title="Sanyai Chat API",
    description="Chat backend for hosted LLMs with web search and prompt optimization",
    version="0.1.0",
    lifespan=lifespan,
)

# Enable cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

# Set up request tracing
FastAPIInstrumentor.instrument_app(app)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Reports malformed bodies in the same {"error"} shape as missing fields"""
    logger.warning("request_invalid", path=request.url.path, errors=len(exc.errors()))
    return error_response(400, INVALID_BODY_MESSAGE)


@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    """Logs every request"""
    logger.info("request_started", method=request.method, path=request.url.path)
    try:
        return await call_next(request)
    except Exception as e:
        logger.error("request_failed", method=request.method, path=request.url.path, error=str(e))
        raise


@app.get("/", response_class=PlainTextResponse)
async def root() -> str:
    """Health check"""
    return HEALTH_MESSAGE


@app.post("/chat")
async def chat(
    payload: ChatRequest,
    chat_service: ChatService = Depends(get_chat_service),
):
    """
    Answers a user message.
    Creates the chat when no chat_id is given and routes to web search when requested.
    """
    REQUESTS.labels(endpoint="chat").inc()
    if not payload.message:
        return error_response(400, "Message is required")

    started = time.perf_counter()
    try:
        return await chat_service.handle_message(
            payload.message,
            chat_id=payload.chat_id,
            depth=payload.depth,
            web_search=bool(payload.webSearch),
        )
    except Exception as e:
        ERRORS.labels(endpoint="chat").inc()
        logger.error("chat_error", chat_id=payload.chat_id, error=str(e))
        return error_response(500, "Internal Server Error")
    finally:
        PROCESSING_TIME.labels(endpoint="chat").inc(time.perf_counter() - started)


@app.get("/chat/{chat_id}")
async def get_chat(chat_id: str, chat_service: ChatService = Depends(get_chat_service)):
    """Replays a chat's messages in creation order"""
    REQUESTS.labels(endpoint="get_chat").inc()
    messages = await chat_service.get_messages(chat_id)
    return {"messages": [m.model_dump(mode="json") for m in messages]}


@app.get("/chats")
async def list_chats(chat_service: ChatService = Depends(get_chat_service)):
    """Lists the 20 most recent chats"""
    REQUESTS.labels(endpoint="list_chats").inc()
    chats = await chat_service.list_chats(limit=20)
    return {"chats": [c.model_dump(mode="json") for c in chats]}


@app.post("/smart-prompt")
async def smart_prompt(
    payload: SmartPromptRequest,
    smart_prompt_service: SmartPromptService = Depends(get_smart_prompt_service),
):
    """Suggests a shorter, clearer version of a draft prompt"""
    REQUESTS.labels(endpoint="smart_prompt").inc()
    if not payload.prompt:
        return error_response(400, "Prompt is required")

    started = time.perf_counter()
    try:
        return await smart_prompt_service.optimize(payload.prompt)
    except Exception as e:
        ERRORS.labels(endpoint="smart_prompt").inc()
        logger.error("smart_prompt_error", error=str(e))
        return error_response(500, "Failed to analyze prompt")
    finally:
        PROCESSING_TIME.labels(endpoint="smart_prompt").inc(time.perf_counter() - started)


@app.get("/metrics")
async def metrics():
    """Provides Prometheus metrics for system monitoring"""
    return Response(generate_latest(CUSTOM_REGISTRY), media_type="text/plain")
