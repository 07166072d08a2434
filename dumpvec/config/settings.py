"""
Configuration settings for dumpvec.
Uses pydantic-settings for environment variable and .env management.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..utils import constants
from ..utils.exceptions import ConfigurationError

SinkName = Literal["redis", "qdrant", "chroma", "milvus", "pinecone", "surreal"]
ProviderName = Literal["ollama", "tei", "google"]
MetricName = Literal["cosine", "euclidean", "dot"]

METRIC_ALIASES = {
    "cos": "cosine",
    "cosine": "cosine",
    "l2": "euclidean",
    "euclid": "euclidean",
    "euclidean": "euclidean",
    "dot": "dot",
    "ip": "dot",
    "dotproduct": "dot",
    "inner_product": "dot",
}


class Settings(BaseSettings):
    """Fully resolved run configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Input
    data_file: str = Field(default="./surreal.surql", description="Path to the dump file")

    # Vector sink
    export_type: SinkName = Field(default="redis", description="Target vector database")
    db_user: str = Field(default="root", description="Database user")
    db_password: str = Field(default="", description="Database password")
    db_secret: str = Field(default="", description="API key or bearer token")
    use_auth: bool = Field(default=False, description="Send credentials to the database")
    host: str = Field(default="redis://127.0.0.1:6379", description="Database URL")
    database: str = Field(default="default_database", description="Database name")
    collection: Optional[str] = Field(
        default=None, description="Collection name override (defaults to table name)"
    )
    tenant: str = Field(default="default_tenant", description="Chroma tenant")
    namespace: str = Field(default="default_namespace", description="SurrealDB namespace")
    dimension: int = Field(default=constants.EMBEDDING_DIMENSION, description="Vector dimension")
    metric: MetricName = Field(default="cosine", description="Distance metric")
    chunk_size: int = Field(
        default=constants.DEFAULT_CHUNK_SIZE, description="Max entries per sink request"
    )
    max_payload_size_mb: float = Field(
        default=constants.DEFAULT_MAX_PAYLOAD_MB, description="Max request payload in MB"
    )
    sink_concurrency: int = Field(default=2, description="Concurrent sink writes")
    sink_max_retries: int = Field(default=3, description="Retries on connection failure")
    pinecone_cloud: str = Field(default="aws", description="Pinecone serverless cloud")
    pinecone_region: str = Field(default="us-east-1", description="Pinecone serverless region")
    group_redis: bool = Field(default=False, description="Group Redis entries by table")

    # Embedding
    embedding_provider: ProviderName = Field(default="ollama", description="Embedding provider")
    embedding_model: str = Field(
        default=constants.DEFAULT_EMBEDDING_MODEL, description="Embedding model name"
    )
    embedding_url: Optional[str] = Field(default=None, description="Embedding endpoint URL")
    embedding_api_key: str = Field(default="", description="Cloud embedding API key")
    embedding_max_concurrency: int = Field(
        default=constants.DEFAULT_EMBEDDING_CONCURRENCY,
        description="Max embedding requests in flight",
    )
    embedding_batch_size: int = Field(
        default=constants.DEFAULT_EMBEDDING_BATCH_SIZE, description="Texts per embedding batch"
    )
    embedding_max_tokens: int = Field(
        default=constants.DEFAULT_EMBEDDING_MAX_TOKENS, description="Maximum text length per record"
    )
    embedding_truncate_direction: Literal["tail", "head"] = Field(
        default="tail", description="tail keeps the start of the text, head keeps the end"
    )
    embedding_truncate_unit: Literal["chars", "tokens"] = Field(
        default="chars", description="Unit of the text length limit"
    )
    embedding_timeout: float = Field(
        default=constants.DEFAULT_EMBEDDING_TIMEOUT,
        validation_alias=AliasChoices("embedding_timeout", "ollama_timeout"),
        description="Seconds per embedding request",
    )
    embedding_max_retries: int = Field(default=3, description="Retries on 429/5xx")
    embedding_retry_base_delay: float = Field(default=2.0, description="Backoff base in seconds")
    tei_binary_path: str = Field(
        default=constants.DEFAULT_TEI_BINARY, description="Inference server binary"
    )
    tei_local_port: int = Field(default=constants.DEFAULT_TEI_PORT, description="Inference server port")
    tei_startup_timeout: float = Field(
        default=constants.TEI_STARTUP_TIMEOUT, description="Seconds to wait for readiness"
    )

    # Pipeline
    num_threads: int = Field(default=0, description="Extraction threads, 0 for cpu count")
    queue_size: int = Field(default=constants.DEFAULT_QUEUE_SIZE, description="Record queue bound")
    use_exclude: bool = Field(default=False, description="Apply exclusion rules")
    exclude_path: str = Field(default="config/exclude.json", description="Exclusion rules file")
    clean_html: bool = Field(default=True, description="Strip HTML from text values")
    debug: bool = Field(default=False, description="Print each record before embedding")
    log_level: str = Field(default=constants.DEFAULT_LOG_LEVEL, description="Logging level")

    @field_validator("metric", mode="before")
    @classmethod
    def _normalize_metric(cls, value):
        if isinstance(value, str):
            return METRIC_ALIASES.get(value.strip().lower(), value)
        return value

    @field_validator("export_type", "embedding_provider", mode="before")
    @classmethod
    def _lowercase(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator(
        "dimension",
        "chunk_size",
        "sink_concurrency",
        "embedding_max_concurrency",
        "embedding_batch_size",
        "embedding_max_tokens",
        "queue_size",
    )
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be greater than 0")
        return value

    @field_validator("max_payload_size_mb", "embedding_timeout")
    @classmethod
    def _positive_float(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be greater than 0")
        return value

    @property
    def max_payload_bytes(self) -> int:
        return int(self.max_payload_size_mb * 1024 * 1024)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def load_settings(**overrides) -> Settings:
    """Build settings from defaults, environment and explicit overrides.

    Raises:
        ConfigurationError: If any value fails validation.
    """
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
