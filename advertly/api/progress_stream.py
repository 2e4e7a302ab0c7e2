"""
Progress stream - SSE framing for strategy generation.

Wire format: one record per event, ``data: <json>\\n\\n``. Records are tagged
by ``type``:

    {"type": "progress", "step": 2, "progress": 15, "message": "..."}
    {"type": "complete", "data": <Strategy>}
    {"type": "error", "error": "...", "cause": "...", "category": "..."}

A stream always ends with exactly one complete or error record.

Both delivery modes (streamed and unary) go through run_with_deadline(),
so they compute the same Strategy and differ only in progress visibility.
"""

import asyncio
import json
import logging
from typing import Annotated, Any, AsyncIterator, Callable, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from ..core.errors import PipelineStageError, PipelineTimeout
from ..pipelines.strategy_generation import StrategyDependencies, run_strategy_generation
from ..services.models import ProgressEvent, Strategy

logger = logging.getLogger(__name__)

SSE_PREFIX = "data: "

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


# ============================================================================
# Records
# ============================================================================

class ProgressRecord(BaseModel):
    type: Literal["progress"] = "progress"
    step: int
    progress: int
    message: str

    @classmethod
    def from_event(cls, event: ProgressEvent) -> "ProgressRecord":
        return cls(step=event.step, progress=event.progress, message=event.message)


class CompleteRecord(BaseModel):
    type: Literal["complete"] = "complete"
    data: Strategy


class ErrorRecord(BaseModel):
    type: Literal["error"] = "error"
    error: str
    cause: Optional[str] = None
    category: Optional[str] = None


StreamRecord = Annotated[
    Union[ProgressRecord, CompleteRecord, ErrorRecord],
    Field(discriminator="type"),
]

_record_adapter = TypeAdapter(StreamRecord)


def error_record(error: BaseException) -> ErrorRecord:
    """Build the terminal error record for a failed run."""
    if isinstance(error, (PipelineStageError, PipelineTimeout)):
        details = error.to_dict()
        return ErrorRecord(error=details["message"], cause=details["cause"], category=details["category"])
    return ErrorRecord(error=str(error) or "Strategy generation failed")


# ============================================================================
# Encoding / decoding
# ============================================================================

def encode_sse(record: Union[ProgressRecord, CompleteRecord, ErrorRecord]) -> str:
    """Frame one record as an SSE data event."""
    return f"{SSE_PREFIX}{record.model_dump_json(by_alias=True)}\n\n"


def parse_sse_line(line: str) -> Optional[Union[ProgressRecord, CompleteRecord, ErrorRecord]]:
    """
    Parse one line of the stream.

    Returns:
        The record, or None for blank lines, non-data lines, malformed JSON
        and unknown record shapes
    """
    line = line.rstrip("\r")
    if not line.startswith(SSE_PREFIX):
        return None

    try:
        payload = json.loads(line[len(SSE_PREFIX):])
    except json.JSONDecodeError:
        logger.debug(f"Ignoring malformed stream line: {line[:80]}")
        return None

    try:
        return _record_adapter.validate_python(payload)
    except ValidationError:
        logger.debug(f"Ignoring unknown stream record: {line[:80]}")
        return None


class SSEDecoder:
    """
    Incremental decoder for the progress stream.

    Transport chunks can split a record anywhere. The decoder keeps the
    trailing partial line until the rest arrives.

    Example:
        >>> decoder = SSEDecoder()
        >>> decoder.feed('data: {"type": "progress", "step": 1, "progr')
        []
        >>> decoder.feed('ess": 0, "message": "Starting"}\\n\\n')
        [ProgressRecord(type='progress', step=1, progress=0, message='Starting')]
    """

    def __init__(self):
        self._buffer = ""

    def feed(self, chunk: str) -> List[Union[ProgressRecord, CompleteRecord, ErrorRecord]]:
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split("\n")
        return [record for record in map(parse_sse_line, lines) if record is not None]

    def flush(self) -> List[Union[ProgressRecord, CompleteRecord, ErrorRecord]]:
        """Parse whatever is left once the stream has ended."""
        remainder, self._buffer = self._buffer, ""
        record = parse_sse_line(remainder)
        return [record] if record is not None else []


# ============================================================================
# Delivery
# ============================================================================

async def run_with_deadline(
    onboarding_data: Mapping[str, Any],
    deps: StrategyDependencies,
    on_progress: Optional[Callable[[ProgressEvent], None]] = None,
    profile_id: Optional[str] = None,
    timeout: Optional[float] = None,
) -> Strategy:
    """
    Run the pipeline, cancelling it if it outlives ``timeout`` seconds.

    Raises:
        PipelineTimeout: The deadline passed. The pipeline task is cancelled.
        PipelineStageError: A generation stage failed
    """
    try:
        return await asyncio.wait_for(
            run_strategy_generation(
                onboarding_data,
                deps,
                on_progress=on_progress,
                profile_id=profile_id,
            ),
            timeout,
        )
    except asyncio.TimeoutError as e:
        logger.error(f"Strategy generation timed out after {timeout}s")
        raise PipelineTimeout(timeout) from e


async def stream_strategy_events(
    onboarding_data: Mapping[str, Any],
    deps: StrategyDependencies,
    profile_id: Optional[str] = None,
    timeout: Optional[float] = None,
) -> AsyncIterator[str]:
    """
    Run the pipeline and yield SSE-framed records as they are produced.

    The pipeline runs as its own task. If the consumer stops iterating
    (client disconnect), the task is cancelled.
    """
    queue: "asyncio.Queue[Union[ProgressRecord, CompleteRecord, ErrorRecord]]" = asyncio.Queue()

    def on_progress(event: ProgressEvent) -> None:
        queue.put_nowait(ProgressRecord.from_event(event))

    async def produce() -> None:
        try:
            strategy = await run_with_deadline(
                onboarding_data,
                deps,
                on_progress=on_progress,
                profile_id=profile_id,
                timeout=timeout,
            )
        except Exception as e:
            if not isinstance(e, (PipelineStageError, PipelineTimeout)):
                logger.exception("Unexpected error during streamed strategy generation")
            queue.put_nowait(error_record(e))
        else:
            queue.put_nowait(CompleteRecord(data=strategy))

    task = asyncio.create_task(produce())
    try:
        while True:
            record = await queue.get()
            yield encode_sse(record)
            if record.type != "progress":
                break
    finally:
        if not task.done():
            logger.info("Stream consumer went away, cancelling strategy generation")
            task.cancel()
