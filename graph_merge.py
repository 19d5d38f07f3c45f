"""
Path merge engine for the interest graph.

A *path* is an ordered list of steps, root to leaf::

    [{'name': 'Music', 'type': 'category'},
     {'name': 'Rock', 'type': 'category'},
     {'name': 'Pink Floyd', 'type': 'entity', 'attributes': {...}}]

``merge_path`` walks the steps keeping a current parent.  At every step the
children of that parent (or the top-level nodes when there is no parent yet)
are searched with the fuzzy matcher:

  * match      -> descend into the existing node, nothing is created
  * no match   -> the canonical id is looked up across the whole graph.  An
                  existing node is reused as-is (a cross-link, the graph is a
                  DAG); otherwise a new node is created.  The parent -> node
                  edge is added unless it already exists.

A cross-link that would close a cycle (the reused node is the current parent
or one of its ancestors) is refused and a distinct node with a suffixed id
("rock-2") is created instead.

Graphs are plain dicts ``{'nodes': {id: node}, 'edges': [edge, ...]}`` and
every function here returns a new graph; the input is never mutated.
"""

from __future__ import annotations

import logging
import uuid
from collections import deque
from typing import Any, Dict, List, Optional, Set, Tuple

from graph_matching import canonicalize, find_matching_node

logger = logging.getLogger(__name__)

NODE_TYPES: Set[str] = {'root', 'category', 'entity'}
STEP_TYPES: Set[str] = {'category', 'entity'}


class MalformedPathError(ValueError):
    """Raised when a path (or custom node request) is rejected before merging."""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ---------------------------------------------------------------------------
# Graph helpers
# ---------------------------------------------------------------------------

def empty_graph() -> Dict[str, Any]:
    return {'nodes': {}, 'edges': []}


def copy_graph(graph: Dict[str, Any]) -> Dict[str, Any]:
    """Shallow copy: new containers, shared (never mutated) node dicts."""
    return {
        'nodes': dict(graph.get('nodes', {})),
        'edges': list(graph.get('edges', [])),
    }


def make_node(
    node_id: str,
    label: str,
    node_type: str,
    attributes: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    return {
        'id': node_id,
        'label': label,
        'type': node_type,
        'attributes': dict(attributes or {}),
        'position': {'x': 0, 'y': 0},
        'color_override': None,
    }


def make_edge(source: str, target: str) -> Dict[str, Any]:
    return {'id': f'{source}-{target}', 'source': source, 'target': target}


def has_edge(edges: List[Dict[str, Any]], source: str, target: str) -> bool:
    return any(e['source'] == source and e['target'] == target for e in edges)


def child_ids(edges: List[Dict[str, Any]], parent_id: str) -> List[str]:
    """Targets of edges leaving *parent_id*, in edge order."""
    return [e['target'] for e in edges if e['source'] == parent_id]


def parent_ids(edges: List[Dict[str, Any]], node_id: str) -> List[str]:
    """Sources of edges entering *node_id*, in edge order."""
    return [e['source'] for e in edges if e['target'] == node_id]


def top_level_nodes(graph: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Nodes typed ``root`` plus every node without an incoming edge."""
    targets = {e['target'] for e in graph['edges']}
    return [
        n for n in graph['nodes'].values()
        if n.get('type') == 'root' or n['id'] not in targets
    ]


def ancestors(edges: List[Dict[str, Any]], node_id: str) -> Set[str]:
    """*node_id* plus everything that reaches it through incoming edges."""
    seen: Set[str] = {node_id}
    queue = deque([node_id])
    while queue:
        current = queue.popleft()
        for src in parent_ids(edges, current):
            if src not in seen:
                seen.add(src)
                queue.append(src)
    return seen


def _unique_id(nodes: Dict[str, Any], base: str) -> str:
    n = 2
    while f'{base}-{n}' in nodes:
        n += 1
    return f'{base}-{n}'


def _generate_id() -> str:
    """Unique id for user-created nodes."""
    return f'custom-{uuid.uuid4().hex[:8]}'


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_path(path: Any) -> List[Dict[str, Any]]:
    """
    Check a path and return it as a list of normalised steps.

    A step must be a dict with a non-blank ``name``.  ``type`` defaults to
    ``category`` and must be one of STEP_TYPES; ``attributes`` must be a
    dict when present.  The whole path is rejected on the first bad step so
    a malformed path never reaches the merge.
    """
    if not isinstance(path, list) or not path:
        raise MalformedPathError('Path must be a non-empty list of steps')

    steps: List[Dict[str, Any]] = []
    for i, step in enumerate(path):
        if not isinstance(step, dict):
            raise MalformedPathError(f'Step {i} is not an object', {'step': i})

        name = step.get('name')
        if not isinstance(name, str) or not name.strip():
            raise MalformedPathError(f'Step {i} is missing a name', {'step': i})

        step_type = step.get('type') or 'category'
        if step_type not in STEP_TYPES:
            raise MalformedPathError(
                f'Step {i} has invalid type {step_type!r}',
                {'step': i, 'type': step_type},
            )

        attributes = step.get('attributes')
        if attributes is not None and not isinstance(attributes, dict):
            raise MalformedPathError(
                f'Step {i} attributes must be an object', {'step': i}
            )

        steps.append({
            'name': name.strip(),
            'type': step_type,
            'attributes': attributes or {},
        })
    return steps


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------

def _merge_step(
    graph: Dict[str, Any],
    parent_id: Optional[str],
    step: Dict[str, Any],
    new_id: Optional[str] = None,
) -> str:
    """Traverse into or create the node for one step; returns its id."""
    nodes = graph['nodes']
    edges = graph['edges']

    if parent_id is not None:
        candidates = [nodes[cid] for cid in child_ids(edges, parent_id) if cid in nodes]
    else:
        candidates = top_level_nodes(graph)

    match = find_matching_node(candidates, step['name'])
    if match is not None:
        logger.debug("Traversing to existing node '%s' (%s)", match['label'], match['id'])
        return match['id']

    node_id = new_id or canonicalize(step['name'])

    if (
        node_id in nodes
        and parent_id is not None
        and node_id in ancestors(edges, parent_id)
    ):
        fallback = _unique_id(nodes, node_id)
        logger.warning(
            "Cross-link %s -> %s would create a cycle; creating '%s' instead",
            parent_id, node_id, fallback,
        )
        node_id = fallback

    if node_id in nodes:
        logger.debug("Node '%s' exists elsewhere, cross-linking", node_id)
    else:
        node_type = 'root' if parent_id is None and step['type'] == 'category' else step['type']
        nodes[node_id] = make_node(node_id, step['name'], node_type, step.get('attributes'))
        logger.debug("Created node '%s' (%s, %s)", step['name'], node_id, node_type)

    if parent_id is not None:
        if has_edge(edges, parent_id, node_id):
            logger.debug("Edge %s -> %s already exists", parent_id, node_id)
        else:
            edges.append(make_edge(parent_id, node_id))
            logger.debug("Created edge %s -> %s", parent_id, node_id)

    return node_id


def merge_path(graph: Dict[str, Any], path: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Merge *path* into *graph* and return the new graph."""
    steps = validate_path(path)
    new_graph = copy_graph(graph)

    n_before = len(new_graph['nodes'])
    e_before = len(new_graph['edges'])

    parent_id: Optional[str] = None
    for step in steps:
        parent_id = _merge_step(new_graph, parent_id, step)

    logger.info(
        "Merged path %s: nodes %d→%d  edges %d→%d",
        ' -> '.join(s['name'] for s in steps),
        n_before, len(new_graph['nodes']), e_before, len(new_graph['edges']),
    )
    return new_graph


def add_custom_node(
    graph: Dict[str, Any],
    name: str,
    parent_id: Optional[str] = None,
    node_type: str = 'entity',
    node_id: Optional[str] = None,
) -> Tuple[Dict[str, Any], str]:
    """
    Add a user-created node under *parent_id* (or at the top level).

    This is a one-step merge starting below *parent_id*: an existing child
    that matches *name* is reused.  Otherwise the node gets *node_id*, or a
    freshly generated ``custom-`` id.  Returns ``(new_graph, node_id)``.
    """
    steps = validate_path([{'name': name, 'type': node_type}])
    if parent_id is not None and parent_id not in graph['nodes']:
        raise MalformedPathError(
            f'Unknown parent node {parent_id!r}', {'parent_id': parent_id}
        )

    new_graph = copy_graph(graph)
    added_id = _merge_step(new_graph, parent_id, steps[0], new_id=node_id or _generate_id())
    logger.info("Custom node '%s' placed as %s under %s", name, added_id, parent_id)
    return new_graph, added_id


def graph_summary(graph: Dict[str, Any]) -> Dict[str, Any]:
    """Compact description of the graph handed to the text generator."""
    nodes = graph['nodes']
    edges = graph['edges']
    return {
        'roots': [n['label'] for n in top_level_nodes(graph)],
        'nodes': [
            {
                'label': n['label'],
                'type': n['type'],
                'children': [nodes[c]['label'] for c in child_ids(edges, n['id']) if c in nodes],
            }
            for n in nodes.values()
        ],
    }
