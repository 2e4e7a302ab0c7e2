"""
Progress reporting for strategy generation nodes.

Each node reports exactly one ProgressEvent when it starts, taken from its
NodeMetadata. Reporting also serves as the cancellation checkpoint before
the node's expensive work.
"""

import asyncio
import logging

from pydantic_graph import GraphRunContext

from ...services.models import ProgressEvent
from ..metadata import get_node_metadata

logger = logging.getLogger(__name__)


async def report_progress(ctx: GraphRunContext, node) -> ProgressEvent:
    """
    Emit the node's progress event.

    Raises:
        asyncio.CancelledError: If the run was cancelled before this node
    """
    # Yield once so a pending cancellation is raised here, before any work
    await asyncio.sleep(0)

    metadata = get_node_metadata(type(node))
    event = ProgressEvent(
        step=metadata.step,
        progress=metadata.progress,
        message=metadata.message,
    )
    ctx.state.progress_events.append(event)

    if ctx.deps.on_progress is not None:
        ctx.deps.on_progress(event)

    logger.debug(f"Progress {event.progress}%: {event.message}")
    return event
