"""Split sink writes so no request exceeds the entry-count or byte ceilings."""

from __future__ import annotations

import json
from typing import Callable, Iterator, List, Sequence, Tuple

from ..sinks.base import SinkEntry
from ..utils.constants import REQUEST_ENVELOPE_BYTES
from ..utils.exceptions import PayloadTooLargeError

ENVELOPE_BYTES = REQUEST_ENVELOPE_BYTES
SEPARATOR_BYTES = 1

SizeFunction = Callable[[SinkEntry], int]


def estimate_entry_size(entry: SinkEntry) -> int:
    """Serialized JSON size of an entry in bytes.

    Sinks measure their own wire format with
    :meth:`~dumpvec.sinks.base.VectorSink.estimate_entry_size`; this generic
    form is the default when none is given.
    """
    body = {"id": entry.id, "vector": entry.vector, "metadata": entry.metadata}
    return len(json.dumps(body, ensure_ascii=False, default=str).encode("utf-8"))


def partition_oversized(
    entries: Sequence[SinkEntry],
    max_bytes: int,
    size_of: SizeFunction = estimate_entry_size,
    envelope: int = ENVELOPE_BYTES,
) -> Tuple[List[SinkEntry], List[SinkEntry]]:
    """Separate entries that fit in a request from those that never can."""
    fitting: List[SinkEntry] = []
    oversized: List[SinkEntry] = []
    limit = max_bytes - envelope
    for entry in entries:
        (oversized if size_of(entry) > limit else fitting).append(entry)
    return fitting, oversized


def split_entries(
    entries: Sequence[SinkEntry],
    chunk_size: int,
    max_bytes: int,
    size_of: SizeFunction = estimate_entry_size,
    envelope: int = ENVELOPE_BYTES,
) -> Iterator[List[SinkEntry]]:
    """Yield consecutive chunks of at most ``chunk_size`` entries whose
    request size stays within ``max_bytes``.

    Args:
        entries: Entries in write order.
        chunk_size: Maximum entries per chunk.
        max_bytes: Payload ceiling of one request.
        size_of: Wire size of one entry.
        envelope: Bytes of the request around its entries.

    Raises:
        PayloadTooLargeError: If one entry alone exceeds the ceiling.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be greater than 0")

    limit = max_bytes - envelope
    chunk: List[SinkEntry] = []
    chunk_bytes = 0
    for entry in entries:
        size = size_of(entry)
        if size > limit:
            raise PayloadTooLargeError(
                f"Entry {entry.id} is {size} bytes, above the {max_bytes} byte ceiling"
            )
        if chunk and (len(chunk) >= chunk_size or chunk_bytes + SEPARATOR_BYTES + size > limit):
            yield chunk
            chunk, chunk_bytes = [], 0
        chunk_bytes += size + (SEPARATOR_BYTES if chunk else 0)
        chunk.append(entry)
    if chunk:
        yield chunk
