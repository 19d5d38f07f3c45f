"""
Edit operations on interest graph snapshots.

Both operations are pure and total: they return a new graph and a missing
node id simply returns the graph unchanged.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Dict, Optional, Set

from graph_merge import child_ids, copy_graph

logger = logging.getLogger(__name__)


def descendants(graph: Dict[str, Any], node_id: str) -> Set[str]:
    """Every node reachable from *node_id* through outgoing edges (excluding itself)."""
    edges = graph['edges']
    seen: Set[str] = set()
    queue = deque([node_id])
    while queue:
        current = queue.popleft()
        for target in child_ids(edges, current):
            if target not in seen and target != node_id:
                seen.add(target)
                queue.append(target)
    return seen


def delete_node(graph: Dict[str, Any], node_id: str, cascade: bool = False) -> Dict[str, Any]:
    """
    Remove *node_id* and every edge touching it.

    With ``cascade`` the whole reachable subtree goes too, including nodes
    that other parents also point at.  Without it, children that lose their
    only parent stay in the graph as parentless nodes.
    """
    if node_id not in graph['nodes']:
        logger.debug("Delete of unknown node %s ignored", node_id)
        return graph

    doomed = {node_id}
    if cascade:
        doomed |= descendants(graph, node_id)

    new_graph = copy_graph(graph)
    for nid in doomed:
        new_graph['nodes'].pop(nid, None)
    new_graph['edges'] = [
        e for e in new_graph['edges']
        if e['source'] not in doomed and e['target'] not in doomed
    ]

    logger.info(
        "Deleted %d node(s) starting at %s (cascade=%s)", len(doomed), node_id, cascade
    )
    return new_graph


def update_node_color(
    graph: Dict[str, Any],
    node_id: str,
    color: Optional[str],
) -> Dict[str, Any]:
    """Set (or clear, with None) the explicit colour of a node."""
    node = graph['nodes'].get(node_id)
    if node is None:
        logger.debug("Recolor of unknown node %s ignored", node_id)
        return graph

    new_graph = copy_graph(graph)
    new_graph['nodes'][node_id] = {**node, 'color_override': color or None}
    return new_graph
