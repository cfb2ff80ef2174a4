from dataclasses import dataclass, field
import os

from .models import ChunkingOptions


@dataclass
class ChunkingServiceConfig:
    data_dir: str = "data/chunking"
    options: ChunkingOptions = field(default_factory=ChunkingOptions)

    @classmethod
    def from_env(cls) -> "ChunkingServiceConfig":
        """
        Build a config from RAGCHUNK_* environment variables.

        Unset variables keep their defaults; invalid combinations raise the
        same pydantic ValidationError as constructing the options directly.
        """
        def _int(name: str) -> int | None:
            value = os.environ.get(name)
            return int(value) if value else None

        overrides = {
            "strategy": os.environ.get("RAGCHUNK_STRATEGY"),
            "max_chunk_size": _int("RAGCHUNK_MAX_CHUNK_SIZE"),
            "min_chunk_size": _int("RAGCHUNK_MIN_CHUNK_SIZE"),
            "overlap_size": _int("RAGCHUNK_OVERLAP_SIZE"),
            "language_code": os.environ.get("RAGCHUNK_LANGUAGE"),
        }
        return cls(
            data_dir=os.environ.get("RAGCHUNK_DATA_DIR", cls.data_dir),
            options=ChunkingOptions().with_overrides(**overrides),
        )
