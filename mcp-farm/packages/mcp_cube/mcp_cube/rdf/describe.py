from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, List

from rdflib import BNode, Literal
from rdflib.namespace import RDF

from .graph_node import GraphNode, is_blank

log = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 8


def _leaf(predicate: str, node: GraphNode) -> Dict[str, Any]:
    term = node.term
    if isinstance(term, Literal):
        return {
            "predicate": predicate,
            "value": str(term),
            "language": term.language,
            "datatype": str(term.datatype) if term.datatype else None,
        }
    return {"predicate": predicate, "value": str(term)}


def _describe_list(predicate: str, node: GraphNode, path: FrozenSet[BNode], depth: int, max_depth: int) -> Dict[str, Any]:
    # walk rdf:rest by hand, a list that loops back on itself is flagged like any other cycle
    entry: Dict[str, Any] = {"predicate": predicate, "value": str(node.term), "items": []}
    cells = set(path)
    cell = node
    while cell.term != RDF.nil:
        if cell.term in cells:
            log.warning("Cyclic rdf:rest chain at %s, truncating.", cell.term)
            entry["cycle"] = True
            break
        cells.add(cell.term)
        inner = frozenset(cells)
        entry["items"].extend(_describe(predicate, item, inner, depth + 1, max_depth) for item in cell.out(RDF.first))
        rest = cell.first(RDF.rest)
        if rest is None:
            break
        cell = GraphNode(cell.graph, rest)
    return entry


def _describe(predicate: str, node: GraphNode, path: FrozenSet[BNode], depth: int, max_depth: int) -> Dict[str, Any]:
    if not is_blank(node):
        return _leaf(predicate, node)

    if node.is_list():
        return _describe_list(predicate, node, path, depth, max_depth)

    entry: Dict[str, Any] = {"predicate": predicate, "value": str(node.term)}
    # a blank node already on the current path means the structure loops back
    if node.term in path:
        log.warning("Cyclic blank node structure at %s, truncating.", node.term)
        entry["cycle"] = True
        return entry
    if depth >= max_depth:
        log.warning("Blank node nesting deeper than %d at %s, truncating.", max_depth, node.term)
        entry["truncated"] = True
        return entry

    inner = path | {node.term}
    entry["properties"] = [
        _describe(str(p), child, inner, depth + 1, max_depth)
        for p in sorted(node.predicates())
        for child in node.out(p)
    ]
    return entry


def describe_node(node: GraphNode, max_depth: int = DEFAULT_MAX_DEPTH) -> List[List[Dict[str, Any]]]:
    """Flatten the outgoing subgraph of `node` into a JSON-friendly tree.

    One list per predicate (sorted by IRI), one entry per object. Blank
    nodes are expanded recursively; RDF lists become `items`. Cycles through
    blank nodes and nesting beyond `max_depth` are cut off and flagged with
    `cycle` / `truncated` instead of raising.
    """
    start: FrozenSet[BNode] = frozenset([node.term]) if isinstance(node.term, BNode) else frozenset()
    return [
        [_describe(str(p), child, start, 1, max_depth) for child in node.out(p)]
        for p in sorted(node.predicates())
    ]
