"""
Configuration module using Pydantic Settings.
Supports environment variables and .env files.
"""

from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DOCUMENT_FILENAME = "SIFAZ_manual.pdf"


class PathSettings(BaseSettings):
    """Path configuration for project directories."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    project_root: Path = Field(default=Path(__file__).parent.parent)
    document_path: Path | None = Field(default=None)

    @property
    def data_dir(self) -> Path:
        return self.project_root / "data"

    @property
    def logs_dir(self) -> Path:
        return self.project_root / "logs"

    @property
    def document(self) -> Path:
        return self.document_path or self.data_dir / DOCUMENT_FILENAME


class RAGSettings(BaseSettings):
    """Configuration for the manual assistant."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    openai_api_key: str | None = Field(default=None)
    openai_base_url: str | None = Field(default=None)
    openai_embedding_model: str = Field(default="text-embedding-3-small")
    openai_embedding_dimension: int = Field(default=1536)
    openai_chat_model: str = Field(default="gpt-4o-mini")
    openai_temperature: float = Field(default=0.0)
    openai_vision_model: str | None = Field(default="gpt-4o-mini")
    embedding_batch_size: int = Field(default=100)

    qdrant_location: str | None = Field(default=None)
    qdrant_url: str | None = Field(default=None)
    qdrant_host: str = Field(default="localhost")
    qdrant_port: int = Field(default=6333)
    qdrant_api_key: str | None = Field(default=None)
    collection_name: str = Field(default="sifaz_manual")

    chunk_size: int = Field(default=1000)
    chunk_overlap: int = Field(default=200)
    top_k: int = Field(default=5)
    source_preview_chars: int = Field(default=100)

    pdf_parser: str = Field(default="text")
    max_pages_per_pdf: int = Field(default=0)

    index_on_startup: bool = False
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=3001)
    api_cors_origins: str = Field(default="*")


paths = PathSettings()
rag_settings = RAGSettings()
