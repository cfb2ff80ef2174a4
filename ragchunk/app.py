from fastapi import FastAPI, HTTPException

from .config import ChunkingServiceConfig
from .exceptions import ChunkingError, DocumentLoadError, InvalidOptionsError
from .logging_config import get_logger
from .models import ChunkRequest, ChunkResponse
from .service import ChunkingService

logger = get_logger(__name__)


def create_app(config: ChunkingServiceConfig | None = None) -> FastAPI:
    service = ChunkingService(config or ChunkingServiceConfig.from_env())
    app = FastAPI(
        title="Chunking Service",
        version="1.0.0",
        description="Structure-aware chunking for retrieval pipelines.",
    )

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.post("/chunk", response_model=ChunkResponse)
    def chunk(request: ChunkRequest) -> ChunkResponse:
        try:
            result, output_path = service.handle(request)
        except InvalidOptionsError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except DocumentLoadError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except ChunkingError as exc:
            logger.error(f"Chunking failed: {exc}")
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return ChunkResponse(
            document_id=result.document_id,
            strategy=result.strategy,
            total_chunks=result.total_chunks,
            output_path=output_path,
            chunks=result.chunks,
        )

    return app


app = create_app()
