"""
Ingestion pipeline: dump file -> records -> embeddings -> vector sink.

Extraction runs in a worker thread and feeds a bounded queue. Embedding
workers pull batches from that queue, and a dispatcher regroups their
results by table into sink-sized chunks that are written under a
concurrency limit. A fatal error stops new work from starting while
in-flight batches finish, and every extracted record ends up counted as
either stored or failed.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import os
import sys
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, TextIO, Union

from ..config.exclusions import ExclusionRules
from ..config.settings import Settings
from ..ingestion.detector import detect_file_dialect, read_dump
from ..ingestion.extractor_registry import get_extractor
from ..ingestion.models import Record
from ..ingestion.text_cleaner import clean_html_value
from ..services.embedding_provider import EmbeddingProvider, EmbeddingRequest, truncate_text
from ..services.providers import build_provider
from ..sinks import build_sink
from ..sinks.base import SinkBatch, SinkEntry, VectorSink
from ..utils.exceptions import DumpVecError, PayloadTooLargeError
from ..utils.ids import generate_entry_id
from .chunker import partition_oversized, split_entries

logger = logging.getLogger(__name__)

_DONE = object()
HAND_OFF_POLL_SECONDS = 0.5


@dataclass
class RunReport:
    """Outcome of one pipeline run."""

    source: str = ""
    dialect: Optional[str] = None
    extracted: int = 0
    skipped: int = 0
    embedded: int = 0
    stored: int = 0
    failed: int = 0
    batches_written: int = 0
    elapsed_seconds: float = 0.0
    first_error: Optional[str] = None
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.first_error is None and self.failed == 0

    @property
    def records_per_second(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.stored / self.elapsed_seconds

    def record_failure(self, count: int, error: BaseException | str) -> None:
        message = str(error)
        self.failed += count
        self.errors.append(message)
        if self.first_error is None:
            self.first_error = message

    def summary(self) -> str:
        lines = [
            f"Source: {self.source} ({self.dialect or 'unknown'})",
            f"Extracted: {self.extracted}",
            f"Skipped: {self.skipped}",
            f"Embedded: {self.embedded}",
            f"Stored: {self.stored} in {self.batches_written} batches",
            f"Failed: {self.failed}",
            f"Elapsed: {self.elapsed_seconds:.2f}s ({self.records_per_second:.1f} records/s)",
        ]
        if self.first_error:
            lines.append(f"First error: {self.first_error}")
        return "\n".join(lines)


class IngestionPipeline:
    """Run one dump through a provider into a sink.

    The provider and sink are owned by the caller; see :func:`run_import`
    for the variant that builds and closes them.

    Attributes:
        settings: Resolved run configuration.
        provider: Embedding provider.
        sink: Vector sink.
        exclusions: Table and field exclusion rules.
    """

    def __init__(
        self,
        settings: Settings,
        provider: EmbeddingProvider,
        sink: VectorSink,
        exclusions: Optional[ExclusionRules] = None,
        output: Optional[TextIO] = None,
    ):
        self.settings = settings
        self.provider = provider
        self.sink = sink
        if exclusions is None:
            exclusions = (
                ExclusionRules.load(settings.exclude_path)
                if settings.use_exclude
                else ExclusionRules()
            )
        self.exclusions = exclusions
        self.output = output

        self._created: Set[str] = set()
        self._table_locks: Dict[str, asyncio.Lock] = {}

    async def run(self, path: Union[str, Path, None] = None) -> RunReport:
        """Import one dump file.

        Args:
            path: Dump file, defaults to ``settings.data_file``.

        Returns:
            The run report. ``report.ok`` is False if any record failed.
        """
        path = path or self.settings.data_file
        report = RunReport(source=str(path))
        started = time.monotonic()
        loop = asyncio.get_running_loop()
        cancel = threading.Event()
        stopped = threading.Event()
        threads = self.settings.num_threads or os.cpu_count() or 1
        executor = ThreadPoolExecutor(max_workers=threads, thread_name_prefix="dumpvec-extract")

        try:
            try:
                text = await loop.run_in_executor(executor, read_dump, path)
            except DumpVecError as exc:
                logger.error("Cannot import %s: %s", path, exc)
                report.record_failure(0, exc)
                return report

            dialect = detect_file_dialect(path, text)
            report.dialect = dialect.value

            records: asyncio.Queue = asyncio.Queue(maxsize=self.settings.queue_size)
            results: asyncio.Queue = asyncio.Queue(maxsize=self.settings.queue_size)
            sink_slots = asyncio.Semaphore(self.settings.sink_concurrency)
            worker_count = self.settings.embedding_max_concurrency

            workers = [
                asyncio.create_task(self._embed_worker(records, results, report, cancel))
                for _ in range(worker_count)
            ]
            dispatcher = asyncio.create_task(
                self._dispatch(results, report, cancel, sink_slots)
            )
            try:
                await loop.run_in_executor(
                    executor, self._produce, text, dialect, records, report, cancel, stopped, loop
                )
                for _ in workers:
                    await records.put(_DONE)
                await asyncio.gather(*workers)
                await results.put(_DONE)
                await dispatcher
            finally:
                cancel.set()
                stopped.set()
                for task in [*workers, dispatcher]:
                    if not task.done():
                        task.cancel()
        finally:
            executor.shutdown(wait=False)
            report.elapsed_seconds = time.monotonic() - started
            logger.info("Import finished\n%s", report.summary())
        return report

    # Extraction (runs in a worker thread)

    def _produce(self, text, dialect, queue, report, cancel, stopped, loop) -> None:
        extractor = get_extractor(dialect)
        ignored = 0
        for record in extractor.extract(text):
            if cancel.is_set():
                break
            if self.exclusions.ignore_table(record.table):
                ignored += 1
                continue
            record = self._prepare(record)
            if not self._hand_off(queue, record, stopped, loop):
                break
            report.extracted += 1

        stats = extractor.stats
        report.skipped += stats.skipped + stats.dropped + ignored
        if ignored:
            logger.info("Ignored %d records from excluded tables", ignored)
        logger.info(
            "Extracted %d %s records (%d statements skipped)",
            stats.records,
            dialect.value,
            stats.skipped,
        )

    @staticmethod
    def _hand_off(queue, record, stopped, loop) -> bool:
        """Block until the record is queued. False once the run is torn down."""
        future = asyncio.run_coroutine_threadsafe(queue.put(record), loop)
        while True:
            try:
                future.result(timeout=HAND_OFF_POLL_SECONDS)
                return True
            except FutureTimeout:
                if stopped.is_set():
                    future.cancel()
                    return False

    def _prepare(self, record: Record) -> Record:
        fields = record.fields
        if len(self.exclusions):
            fields = self.exclusions.apply(record.table, fields)
        if self.settings.clean_html:
            fields = clean_html_value(fields)
        record = Record(table=record.table, fields=fields, ordinal=record.ordinal)
        if self.settings.debug:
            out = self.output or sys.stdout
            out.write(f"[{record.table}] {record.render_text()}\n")
            out.flush()
        return record

    # Embedding

    async def _embed_worker(self, queue, results, report, cancel) -> None:
        batch_size = self.settings.embedding_batch_size
        done = False
        while not done:
            item = await queue.get()
            if item is _DONE:
                break
            batch = [item]
            while len(batch) < batch_size:
                try:
                    item = queue.get_nowait()
                except asyncio.QueueEmpty:
                    break
                if item is _DONE:
                    done = True
                    break
                batch.append(item)
            await self._embed_batch(batch, results, report, cancel)

    def _embedding_request(self, record: Record) -> EmbeddingRequest:
        text = truncate_text(
            record.render_text(),
            self.settings.embedding_max_tokens,
            direction=self.settings.embedding_truncate_direction,
            unit=self.settings.embedding_truncate_unit,
        )
        return EmbeddingRequest(text=text, record_ref=record)

    async def _embed_batch(self, batch: List[Record], results, report, cancel) -> None:
        if cancel.is_set():
            report.failed += len(batch)
            return

        logger.debug("Embedding batch of %d records", len(batch))
        try:
            requests = [self._embedding_request(record) for record in batch]
            embedded = await self.provider.embed([request.text for request in requests])
        except DumpVecError as exc:
            logger.error("Embedding batch of %d failed: %s", len(batch), exc)
            report.record_failure(len(batch), exc)
            cancel.set()
            return
        except Exception as exc:
            logger.exception("Unexpected error embedding batch of %d", len(batch))
            report.record_failure(len(batch), exc)
            cancel.set()
            return

        report.embedded += len(batch)
        by_table: Dict[str, List[SinkEntry]] = {}
        for request, result in zip(requests, embedded):
            record = request.record_ref
            entry = SinkEntry(
                id=generate_entry_id(record.table, record.fields, record.ordinal),
                vector=result.vector,
                metadata=record.fields,
            )
            by_table.setdefault(record.table, []).append(entry)
        for table, entries in by_table.items():
            await results.put((table, entries))

    # Sink writes

    async def _dispatch(self, results, report, cancel, sink_slots) -> None:
        chunk_size = self.settings.chunk_size
        max_pending = self.settings.sink_concurrency
        buffers: Dict[str, List[SinkEntry]] = {}
        pending: Set[asyncio.Task] = set()

        async def flush(table: str, entries: List[SinkEntry]) -> None:
            # A slow sink stalls here and, through the bounded results queue,
            # the embed workers.
            while len(pending) >= max_pending:
                _, still_running = await asyncio.wait(
                    pending, return_when=asyncio.FIRST_COMPLETED
                )
                pending.intersection_update(still_running)
            pending.add(
                asyncio.create_task(self._write(table, entries, report, cancel, sink_slots))
            )

        try:
            while True:
                item = await results.get()
                if item is _DONE:
                    break
                table, entries = item
                buffer = buffers.setdefault(table, [])
                buffer.extend(entries)
                while len(buffer) >= chunk_size:
                    await flush(table, buffer[:chunk_size])
                    del buffer[:chunk_size]

            for table, buffer in buffers.items():
                if buffer:
                    await flush(table, buffer)
            if pending:
                await asyncio.gather(*pending)
        finally:
            for task in pending:
                if not task.done():
                    task.cancel()

    async def _ensure_collection(self, table: str) -> None:
        if table in self._created:
            return
        lock = self._table_locks.setdefault(table, asyncio.Lock())
        async with lock:
            if table in self._created:
                return
            await self.sink.ensure_collection(
                table, self.settings.dimension, self.settings.metric
            )
            self._created.add(table)

    async def _write(self, table, entries, report, cancel, sink_slots) -> None:
        max_bytes = self.settings.max_payload_bytes
        size_of = functools.partial(self.sink.estimate_entry_size, table)
        envelope = self.sink.envelope_size(table)
        fitting, oversized = partition_oversized(
            entries, max_bytes, size_of=size_of, envelope=envelope
        )
        for entry in oversized:
            error = PayloadTooLargeError(
                f"Entry {entry.id} of table '{table}' is {size_of(entry)} bytes, "
                f"above the {max_bytes} byte ceiling"
            )
            logger.error("%s", error)
            report.record_failure(1, error)

        chunks = split_entries(
            fitting, self.settings.chunk_size, max_bytes, size_of=size_of, envelope=envelope
        )
        for chunk in chunks:
            if cancel.is_set():
                report.failed += len(chunk)
                continue
            async with sink_slots:
                # Another write may have failed while this one waited for a slot.
                if cancel.is_set():
                    report.failed += len(chunk)
                    continue
                try:
                    await self._ensure_collection(table)
                    await self.sink.upsert(table, SinkBatch(table=table, entries=chunk))
                except DumpVecError as exc:
                    logger.error("Writing %d entries to %s failed: %s", len(chunk), table, exc)
                    report.record_failure(len(chunk), exc)
                    cancel.set()
                    continue
                except Exception as exc:
                    logger.exception("Unexpected error writing %d entries to %s", len(chunk), table)
                    report.record_failure(len(chunk), exc)
                    cancel.set()
                    continue
            report.stored += len(chunk)
            report.batches_written += 1
            logger.debug("Stored %d entries in %s", len(chunk), table)


async def run_import(
    settings: Settings,
    path: Union[str, Path, None] = None,
    provider: Optional[EmbeddingProvider] = None,
    sink: Optional[VectorSink] = None,
) -> RunReport:
    """Build the configured provider and sink, run the import, and close both.

    The sink is checked for reachability before anything is read or
    embedded. The provider is closed on every exit path, which also stops a
    managed inference server.

    Raises:
        ConfigurationError: If the sink or provider cannot be set up.
    """
    sink = sink or build_sink(settings)
    try:
        provider = provider or build_provider(settings)
        try:
            await sink.check_connection()
        except BaseException:
            await provider.close()
            raise
        async with provider:
            pipeline = IngestionPipeline(settings, provider, sink)
            return await pipeline.run(path)
    finally:
        await sink.close()

