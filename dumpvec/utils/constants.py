"""
Application constants for dumpvec.

This module contains default values and magic numbers shared by the
settings layer, the providers and the sinks.
"""

from __future__ import annotations

# Embedding configuration
EMBEDDING_DIMENSION = 768  # nomic-embed-text embedding size
DEFAULT_EMBEDDING_MODEL = "nomic-embed-text"
DEFAULT_OLLAMA_URL = "http://localhost:11434"
DEFAULT_GOOGLE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_EMBEDDING_BATCH_SIZE = 16
DEFAULT_EMBEDDING_CONCURRENCY = 4
DEFAULT_EMBEDDING_MAX_TOKENS = 8000
DEFAULT_EMBEDDING_TIMEOUT = 60  # seconds
TIKTOKEN_ENCODING = "cl100k_base"

# Local inference server
DEFAULT_TEI_BINARY = "tei/text-embeddings-router"
DEFAULT_TEI_PORT = 19999
TEI_STARTUP_TIMEOUT = 300  # seconds
TEI_POLL_INTERVAL = 1.0  # seconds

# Sink configuration
DEFAULT_CHUNK_SIZE = 256  # entries per request
DEFAULT_MAX_PAYLOAD_MB = 12
DEFAULT_SINK_TIMEOUT = 60.0  # seconds
REQUEST_ENVELOPE_BYTES = 256  # reserve when a sink cannot measure its request envelope
PINECONE_CONTROL_URL = "https://api.pinecone.io"
PINECONE_API_VERSION = "2025-01"

# Pipeline configuration
DEFAULT_QUEUE_SIZE = 1000

# Identity
ENTRY_ID_SCHEME = "dumpvec"

# Dialect detection reads this much of the dump
DETECTION_HEAD_BYTES = 64 * 1024

# Logging configuration
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
