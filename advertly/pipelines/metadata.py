"""
Node Metadata for pipeline nodes.

Each node declares which state fields it reads and writes, which services
it calls, and the progress event it emits when it starts. The progress
fields drive the events sent to clients, so the whole progress plan of a
graph can be read from its node classes.

Usage:
    from advertly.pipelines.metadata import NodeMetadata

    @dataclass
    class MyNode(BaseNode[MyState]):
        '''Node description.'''

        metadata: ClassVar[NodeMetadata] = NodeMetadata(
            inputs=["profile"],
            outputs=["competitor_analysis"],
            services=["generation.generate"],
            llm="OpenAI",
            step=3,
            progress=40,
            message="Analyzing competitors and market...",
        )

        async def run(self, ctx): ...
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class NodeMetadata:
    """
    Metadata for a pipeline node.

    Attributes:
        inputs: State fields read by this node
        outputs: State fields written by this node
        services: Service methods called (e.g., "ads_library.fetch_competitor_ads")
        llm: LLM provider used, if any
        step: Ordinal of the progress event emitted on entry
        progress: Percent complete reported on entry (0-100)
        message: Human-readable progress message
    """

    inputs: List[str] = field(default_factory=list)
    outputs: List[str] = field(default_factory=list)
    services: List[str] = field(default_factory=list)
    llm: Optional[str] = None
    step: Optional[int] = None
    progress: Optional[int] = None
    message: str = ""


def get_node_metadata(node_class) -> Optional[NodeMetadata]:
    """
    Extract metadata from a node class if available.

    Args:
        node_class: A BaseNode subclass

    Returns:
        NodeMetadata if the node has metadata defined, None otherwise
    """
    return getattr(node_class, "metadata", None)


def get_progress_plan(node_classes: List) -> List[dict]:
    """
    List the progress events a pipeline emits, in node order.

    Args:
        node_classes: Node classes in execution order

    Returns:
        List of {"node", "step", "progress", "message"} dicts
    """
    plan = []
    for node_class in node_classes:
        metadata = get_node_metadata(node_class)
        if metadata and metadata.progress is not None:
            plan.append({
                "node": node_class.__name__,
                "step": metadata.step,
                "progress": metadata.progress,
                "message": metadata.message,
            })
    return plan
