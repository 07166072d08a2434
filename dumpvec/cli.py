"""
Command-line entry point.

Every flag defaults to None so that only flags given on the command line
override values from the environment or ``.env``.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from .config.settings import Settings, load_settings
from .pipeline.orchestrator import run_import
from .utils.exceptions import ConfigurationError, DumpVecError
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2

# (flags, settings field, type, help)
OPTIONS = [
    (("-f", "--data-file"), "data_file", str, "Path to the dump file"),
    (("-t", "--export-type"), "export_type", str, "Target vector database"),
    (("-u", "--user"), "db_user", str, "Database user"),
    (("-p", "--password"), "db_password", str, "Database password"),
    (("-k", "--secret"), "db_secret", str, "API key or bearer token"),
    (("--host",), "host", str, "Database URL"),
    (("--database",), "database", str, "Database name"),
    (("--collection",), "collection", str, "Collection name override"),
    (("--tenant",), "tenant", str, "Chroma tenant"),
    (("--namespace",), "namespace", str, "SurrealDB namespace"),
    (("--dimension",), "dimension", int, "Vector dimension"),
    (("--metric",), "metric", str, "Distance metric (cosine, euclidean, dot)"),
    (("--chunk-size",), "chunk_size", int, "Max entries per sink request"),
    (("--max-payload-size-mb",), "max_payload_size_mb", float, "Max request payload in MB"),
    (("--sink-concurrency",), "sink_concurrency", int, "Concurrent sink writes"),
    (("--sink-max-retries",), "sink_max_retries", int, "Retries on connection failure"),
    (("--pinecone-cloud",), "pinecone_cloud", str, "Pinecone serverless cloud"),
    (("--pinecone-region",), "pinecone_region", str, "Pinecone serverless region"),
    (("--embedding-provider",), "embedding_provider", str, "ollama, tei or google"),
    (("-m", "--embedding-model"), "embedding_model", str, "Embedding model name"),
    (("--embedding-url",), "embedding_url", str, "Embedding endpoint URL"),
    (("--embedding-api-key",), "embedding_api_key", str, "Cloud embedding API key"),
    (("--embedding-max-concurrency",), "embedding_max_concurrency", int, "Embedding requests in flight"),
    (("--embedding-batch-size",), "embedding_batch_size", int, "Texts per embedding batch"),
    (("--embedding-max-tokens",), "embedding_max_tokens", int, "Maximum text length per record"),
    (("--embedding-truncate-direction",), "embedding_truncate_direction", str, "tail or head"),
    (("--embedding-truncate-unit",), "embedding_truncate_unit", str, "chars or tokens"),
    (("--embedding-timeout",), "embedding_timeout", float, "Seconds per embedding request"),
    (("--embedding-max-retries",), "embedding_max_retries", int, "Retries on 429/5xx"),
    (("--embedding-retry-base-delay",), "embedding_retry_base_delay", float, "Backoff base in seconds"),
    (("--tei-binary-path",), "tei_binary_path", str, "Inference server binary"),
    (("--tei-local-port",), "tei_local_port", int, "Inference server port"),
    (("--tei-startup-timeout",), "tei_startup_timeout", float, "Seconds to wait for readiness"),
    (("--num-threads",), "num_threads", int, "Extraction threads, 0 for cpu count"),
    (("--queue-size",), "queue_size", int, "Record queue bound"),
    (("--exclude-path",), "exclude_path", str, "Exclusion rules file"),
    (("--log-level",), "log_level", str, "Logging level"),
]

SWITCHES = [
    ("--use-auth", "use_auth", "Send credentials to the database"),
    ("--group-redis", "group_redis", "Group Redis entries by table"),
    ("--use-exclude", "use_exclude", "Apply exclusion rules"),
    ("--clean-html", "clean_html", "Strip HTML from text values"),
    ("--debug", "debug", "Print each record before embedding"),
]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dumpvec",
        description="Embed the rows of a database dump and store them in a vector database.",
    )
    for flags, dest, kind, help_text in OPTIONS:
        parser.add_argument(*flags, dest=dest, type=kind, default=None, help=help_text)
    for flag, dest, help_text in SWITCHES:
        parser.add_argument(
            flag, dest=dest, action=argparse.BooleanOptionalAction, default=None, help=help_text
        )
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    """Resolve settings with explicitly given flags taking precedence.

    Raises:
        ConfigurationError: If the combined configuration is invalid.
    """
    overrides = {
        name: value
        for name, value in vars(args).items()
        if value is not None and name in Settings.model_fields
    }
    return load_settings(**overrides)


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    try:
        settings = settings_from_args(args)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG

    setup_logging(settings.log_level)
    try:
        report = asyncio.run(run_import(settings))
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG
    except DumpVecError as exc:
        logger.error("Import aborted: %s", exc)
        return EXIT_FAILED

    print(report.summary())
    return EXIT_OK if report.ok else EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
