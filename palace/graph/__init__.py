"""Link graph: resolution, traversal, relatedness and orphans."""

from palace.graph.analysis import findCommonLinks, findOrphans, findRelatedNotes
from palace.graph.links import (
    getAllLinks,
    getBrokenLinks,
    getIncomingLinks,
    getNoteMetadataByPath,
    getOutgoingLinks,
    isLinkResolved,
    resolveLinkTarget,
)
from palace.graph.traversal import getGraphNode, hasPath, traverseGraph

__all__ = [
    "findCommonLinks",
    "findOrphans",
    "findRelatedNotes",
    "getAllLinks",
    "getBrokenLinks",
    "getGraphNode",
    "getIncomingLinks",
    "getNoteMetadataByPath",
    "getOutgoingLinks",
    "hasPath",
    "isLinkResolved",
    "resolveLinkTarget",
    "traverseGraph",
]
