from typing import Any

import ijson
import msgspec
import structlog
from ijson.common import ObjectBuilder

from vassal.connection.types import ByteStream
from vassal.core.logging import Logger
from vassal.exceptions import DecodeError
from vassal.messages.protocol import Snapshot, WorkerRecord

logger: Logger = structlog.getLogger(__name__)

WORKERS_PREFIX = "workers"
WORKER_ITEM_PREFIX = "workers.item"

# Bytes requested from the stream per parser refill
READ_CHUNK_SIZE = 16 * 1024

_CONTAINER_START = {"start_map": "end_map", "start_array": "end_array"}


class SnapshotDecoder:
    """
    Incrementally decode a stats document into worker records.

    The stream is pulled in READ_CHUNK_SIZE pieces, and every element of
    the `workers` array is validated as soon as it closes, so memory use
    is bounded by the largest single worker rather than the payload.
    """

    __slots__ = ("chunk_size",)

    def __init__(self, chunk_size: int = READ_CHUNK_SIZE) -> None:
        self.chunk_size = chunk_size

    async def decode(self, stream: ByteStream) -> Snapshot:
        """
        Decode one `{"workers": [...]}` document from the stream.

        Raises:
            DecodeError: malformed JSON, unexpected document shape or a
                type mismatch on a recognised worker field
        """
        workers: Snapshot = []
        builder: ObjectBuilder | None = None
        closing_event = ""

        try:
            async for prefix, event, value in ijson.parse(
                stream, buf_size=self.chunk_size, use_float=True
            ):
                if builder is not None:
                    builder.event(event, value)
                    if prefix == WORKER_ITEM_PREFIX and event == closing_event:
                        workers.append(self._to_record(builder.value, len(workers)))
                        builder = None
                    continue

                if prefix == "":
                    self._check_document(event)
                elif prefix == WORKERS_PREFIX:
                    self._check_workers(event)
                    if event in ("start_array", "null"):
                        # A repeated `workers` key replaces the earlier one
                        workers = []
                elif prefix == WORKER_ITEM_PREFIX:
                    if event in _CONTAINER_START:
                        builder = ObjectBuilder()
                        builder.event(event, value)
                        closing_event = _CONTAINER_START[event]
                    else:
                        # Scalar in place of a worker object, let msgspec report it
                        workers.append(self._to_record(value, len(workers)))

        except ijson.JSONError as e:
            raise DecodeError(f"Malformed stats payload: {e}") from e

        logger.debug(f"Decoded {len(workers)} workers from stats payload")
        return workers

    @staticmethod
    def _check_document(event: str) -> None:
        if event not in ("start_map", "map_key", "end_map"):
            raise DecodeError(f"Expected a JSON object at document root, got {event}")

    @staticmethod
    def _check_workers(event: str) -> None:
        # null is accepted as "no workers", matching older servers
        if event not in ("start_array", "end_array", "null"):
            raise DecodeError(f"Expected `array` at `$.workers`, got {event}")

    @staticmethod
    def _to_record(raw: Any, index: int) -> WorkerRecord:
        # null reads as "no value", same as an absent worker or field
        if raw is None:
            return WorkerRecord()
        if isinstance(raw, dict):
            raw = {key: value for key, value in raw.items() if value is not None}
        try:
            return msgspec.convert(raw, WorkerRecord, strict=True)
        except msgspec.ValidationError as e:
            raise DecodeError(f"Invalid worker at index {index}: {e}") from e
