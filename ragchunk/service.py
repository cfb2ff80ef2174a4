from .cancellation import CancellationToken
from .config import ChunkingServiceConfig
from .chunker import DocumentChunker
from .logging_config import get_logger
from .models import ChunkingOptions, ChunkingResult, ChunkRequest
from .storage import ChunkingStorage

logger = get_logger(__name__)


class ChunkingService:
    def __init__(self, config: ChunkingServiceConfig | None = None):
        self.config = config or ChunkingServiceConfig()
        self.chunker = DocumentChunker(self.config.options)
        self.storage = ChunkingStorage(self.config.data_dir)

    def chunk_text(
        self,
        text: str,
        document_id: str = "document",
        options: ChunkingOptions | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ChunkingResult:
        return self.chunker.chunk_text(
            text, document_id=document_id, options=options, cancel_token=cancel_token
        )

    def chunk_file(
        self,
        path: str,
        options: ChunkingOptions | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ChunkingResult:
        return self.chunker.chunk_file(path, options=options, cancel_token=cancel_token)

    def chunk_and_save(
        self, path: str, options: ChunkingOptions | None = None
    ) -> tuple[ChunkingResult, str]:
        result = self.chunk_file(path, options)
        return result, self.save(result)

    def handle(self, request: ChunkRequest) -> tuple[ChunkingResult, str | None]:
        """Run a ChunkRequest; returns the result and the saved file path, if any."""
        if request.path is not None:
            result = self.chunk_file(request.path, request.options)
        else:
            result = self.chunk_text(
                request.text or "",
                document_id=request.document_id or "document",
                options=request.options,
            )
        output_path = self.save(result) if request.save else None
        return result, output_path

    def save(self, result: ChunkingResult) -> str:
        paths = self.storage.save(result)
        logger.info(f"Saved {result.total_chunks} chunks to {paths.chunk_file}")
        return str(paths.chunk_file)
