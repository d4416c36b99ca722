"""
FastAPI server for the manual assistant.

Provides endpoints for building the index, checking its status,
retrieving passages and streaming answers.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Literal

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import rag_settings
from .errors import IndexUnavailable, ValidationError
from .logging_config import logger
from .rag.pipeline import RAGPipeline
from .rag.responder import WireModel


class ConversationTurn(WireModel):
    """A prior message in the conversation."""

    role: Literal["user", "assistant"]
    content: str


class QueryRequest(WireModel):
    """Request body for /retrieve-documents."""

    query: str | None = None


class GenerateRequest(QueryRequest):
    """Request body for /generate-response."""

    conversation_history: list[ConversationTurn] = []


background_tasks = set()


def _require_query(request: QueryRequest | None) -> str:
    if request is None or not request.query or not request.query.strip():
        raise ValidationError("Query is required")
    return request.query


def get_pipeline(request: Request) -> RAGPipeline:
    return request.app.state.pipeline


async def _initialize_in_background(pipeline: RAGPipeline):
    try:
        await pipeline.initialize()
    except IndexUnavailable as e:
        logger.warning(f"Startup indexing failed, will retry on first request: {e}")


def create_app(pipeline: RAGPipeline | None = None) -> FastAPI:
    """Build the FastAPI application around a pipeline instance."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("🚀 Starting manual assistant API...")

        if rag_settings.index_on_startup:
            logger.info("Building index in background...")
            task = asyncio.create_task(_initialize_in_background(app.state.pipeline))
            background_tasks.add(task)
            task.add_done_callback(background_tasks.discard)

        yield

        logger.info("Shutting down manual assistant API...")

    app = FastAPI(
        title="SIFAZ Manual Assistant API",
        description="Ask questions about the SIFAZ farmer's manual.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.pipeline = pipeline or RAGPipeline()

    origins = rag_settings.api_cors_origins.split(",")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(IndexUnavailable)
    async def index_unavailable_handler(request: Request, exc: IndexUnavailable):
        logger.error(f"Index unavailable: {exc}")
        return JSONResponse(status_code=503, content={"error": str(exc)})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content={"error": "Invalid request body", "details": jsonable_encoder(exc.errors())},
        )

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.post("/api/initialize-index")
    async def initialize_index(pipeline: RAGPipeline = Depends(get_pipeline)):
        """Build or attach the index. Safe to call repeatedly."""
        await pipeline.initialize()
        return {"success": True, "message": "Index initialized"}

    @app.get("/api/index-status")
    async def index_status(pipeline: RAGPipeline = Depends(get_pipeline)):
        """Report whether the index is ready."""
        return pipeline.status()

    @app.post("/api/retrieve-documents")
    async def retrieve_documents(
        request: QueryRequest | None = None,
        pipeline: RAGPipeline = Depends(get_pipeline),
    ):
        """Return the passages most similar to the query, with page numbers."""
        query = _require_query(request)
        documents = await pipeline.retrieve(query)
        return {
            "documents": [
                {
                    "content": doc.content,
                    "pageNumber": doc.page_number,
                    "rank": doc.rank,
                    "score": doc.score,
                    "metadata": doc.metadata,
                }
                for doc in documents
            ]
        }

    @app.post("/api/generate-response")
    async def generate_response(
        request: GenerateRequest | None = None,
        pipeline: RAGPipeline = Depends(get_pipeline),
    ):
        """
        Answer a question as a stream of `data: <json>` frames.

        The stream ends with one frame where done is true, carrying either
        the sources and full response, or an error.
        """
        query = _require_query(request)
        history = [
            {"role": turn.role, "content": turn.content}
            for turn in request.conversation_history
        ]

        messages, documents = await pipeline.prepare(query, history)
        frames = (event.to_sse() for event in pipeline.stream(messages, documents))

        return StreamingResponse(
            frames,
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    return app


app = create_app()


def start_server(port: int | None = None):
    """Start the FastAPI server."""
    import uvicorn

    port = port or rag_settings.api_port
    logger.info(f"Starting server on port {port}...")
    uvicorn.run(
        "manual_rag.api:app",
        host=rag_settings.api_host,
        port=port,
        reload=False,
    )
