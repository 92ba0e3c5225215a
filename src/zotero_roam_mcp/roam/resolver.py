"""Turn a picked citation into an opened or newly created note."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..models.citation import CitationError, CitationRecord, parse_citation_payload
from .graph import KnowledgeGraph, Node
from .refs import Ref, UriFormat, canonicalize
from .template import build_template

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    """Outcome of the last resolved citation."""

    ref: Ref
    record: CitationRecord
    node: Node
    created: bool


class CitationResolver:
    def __init__(
        self,
        graph: KnowledgeGraph,
        uri_format: UriFormat = UriFormat.ORIGINAL,
        username: str = "",
    ) -> None:
        self.graph = graph
        self.uri_format = uri_format
        self.username = username
        self.last: Resolution | None = None

    def resolve(self, payload: str) -> Resolution:
        """Open the node for the cited item, creating it if needed.

        Raises:
            CitationError: If the payload has no usable citation or URI.
        """
        record = parse_citation_payload(payload)
        try:
            ref = canonicalize(record.uri, self.uri_format, self.username)
        except ValueError as e:
            raise CitationError(str(e)) from e

        node = self.graph.find_node_by_ref(ref.key)
        if node is not None:
            logger.info("Opening existing node %s for %s", node.id, ref.key)
            self.graph.open_node(node.id, node.file, node.pos)
            created = False
        else:
            logger.info("No node for %s, creating %r", ref.key, record.title)
            node = self.graph.create_node(build_template(record, ref), record.title)
            created = True

        self.last = Resolution(ref=ref, record=record, node=node, created=created)
        return self.last
