"""
Tree layout for the interest graph.

The graph is a DAG (a node may sit under several categories) but the canvas
draws a tree.  ``layout`` projects the visible part of the graph onto a
single-parent tree and positions it:

  1. Visibility
     – A predicate over node ids picks the visible nodes.  ``all_nodes``
       gives the global view, ``personal_view`` keeps the selected nodes
       and every ancestor of them.

  2. Layout-parent selection
     – Each visible node keeps the first incoming edge (edge order) whose
       source is visible.  Nodes without one hang off a synthetic viewer
       root.  A parent chain that loops is cut and re-attached to the
       viewer.  The projection is never written back into the graph.

  3. Tidy tree
     – Reingold–Tilford with Walker's linear-time improvements (the same
       walk d3-hierarchy's ``tree`` uses): fixed node size, siblings one
       unit apart, cousins two, no subtree overlap, viewer at (0, 0).

  4. Colours
     – ``color_override`` first, otherwise palette hash of the node's own
       id (top-level nodes) or of its layout-parent's id.

The output is a pure function of the graph, the filter and the selected ids.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

from graph_colors import VIEWER_COLOR, get_node_color
from graph_merge import parent_ids

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Tuneable constants
# ---------------------------------------------------------------------------
NODE_SPACING_X: float = 180.0    # horizontal distance between siblings
LEVEL_SPACING_Y: float = 250.0   # vertical distance between depth levels
EDGE_STYLE: str = 'smoothstep'

VIEWER_NODE_ID = '__viewer__'    # canonical ids never contain '_'

Visibility = Callable[[str], bool]


# ---------------------------------------------------------------------------
# Visibility filters
# ---------------------------------------------------------------------------

def all_nodes(graph: Dict[str, Any]) -> Visibility:
    """Global view: every node is visible."""
    nodes = graph['nodes']
    return lambda node_id: node_id in nodes


def personal_ids(graph: Dict[str, Any], selected_ids: Iterable[str]) -> Set[str]:
    """Selected nodes plus every node on a path from a top-level node to them."""
    nodes = graph['nodes']
    edges = graph['edges']
    visible: Set[str] = set()
    queue = deque(sid for sid in selected_ids if sid in nodes)
    while queue:
        current = queue.popleft()
        if current in visible:
            continue
        visible.add(current)
        queue.extend(src for src in parent_ids(edges, current) if src not in visible)
    return visible


def personal_view(graph: Dict[str, Any], selected_ids: Iterable[str]) -> Visibility:
    return personal_ids(graph, selected_ids).__contains__


# ---------------------------------------------------------------------------
# Single-parent projection
# ---------------------------------------------------------------------------

def select_layout_parents(
    graph: Dict[str, Any],
    visible: List[str],
) -> Dict[str, Optional[str]]:
    """Map each visible node id to its layout-parent id (None = viewer)."""
    visible_set = set(visible)
    parents: Dict[str, Optional[str]] = {nid: None for nid in visible}

    for e in graph['edges']:
        src, tgt = e['source'], e['target']
        if tgt in visible_set and src in visible_set and src != tgt and parents[tgt] is None:
            parents[tgt] = src

    # Cut loops so the projection is a tree.
    for nid in visible:
        seen: Set[str] = set()
        current: Optional[str] = nid
        while current is not None and current not in seen:
            seen.add(current)
            current = parents[current]
        if current is not None:
            logger.warning("Layout parent chain loops at %s; attaching it to the viewer", current)
            parents[current] = None

    return parents


# ---------------------------------------------------------------------------
# Tidy tree (Buchheim, Jünger & Leipert)
# ---------------------------------------------------------------------------

class _TreeNode:
    def __init__(self, node_id: str, parent: Optional['_TreeNode'], index: int, depth: int):
        self.id = node_id
        self.parent = parent
        self.children: List[_TreeNode] = []
        self.index = index
        self.depth = depth
        self.ancestor: _TreeNode = self
        self.anchor: Optional[_TreeNode] = None   # default ancestor while apportioning children
        self.thread: Optional[_TreeNode] = None
        self.prelim = 0.0
        self.mod = 0.0
        self.change = 0.0
        self.shift = 0.0
        self.x = 0.0


def _separation(a: _TreeNode, b: _TreeNode) -> float:
    return 1.0 if a.parent is b.parent else 2.0


def _next_left(v: _TreeNode) -> Optional[_TreeNode]:
    return v.children[0] if v.children else v.thread


def _next_right(v: _TreeNode) -> Optional[_TreeNode]:
    return v.children[-1] if v.children else v.thread


def _move_subtree(wm: _TreeNode, wp: _TreeNode, shift: float) -> None:
    change = shift / (wp.index - wm.index)
    wp.change -= change
    wp.shift += shift
    wm.change += change
    wp.prelim += shift
    wp.mod += shift


def _execute_shifts(v: _TreeNode) -> None:
    shift = 0.0
    change = 0.0
    for w in reversed(v.children):
        w.prelim += shift
        w.mod += shift
        change += w.change
        shift += w.shift + change


def _next_ancestor(vim: _TreeNode, v: _TreeNode, ancestor: _TreeNode) -> _TreeNode:
    return vim.ancestor if vim.ancestor.parent is v.parent else ancestor


def _apportion(v: _TreeNode, w: Optional[_TreeNode], ancestor: _TreeNode) -> _TreeNode:
    if w is None:
        return ancestor

    vip = vop = v
    vim: Optional[_TreeNode] = w
    vom = v.parent.children[0]
    sip, sop, sim, som = vip.mod, vop.mod, vim.mod, vom.mod

    while True:
        vim = _next_right(vim)
        vip = _next_left(vip)
        if vim is None or vip is None:
            break
        vom = _next_left(vom)
        vop = _next_right(vop)
        vop.ancestor = v
        shift = vim.prelim + sim - vip.prelim - sip + _separation(vim, vip)
        if shift > 0:
            _move_subtree(_next_ancestor(vim, v, ancestor), v, shift)
            sip += shift
            sop += shift
        sim += vim.mod
        sip += vip.mod
        som += vom.mod
        sop += vop.mod

    if vim is not None and _next_right(vop) is None:
        vop.thread = vim
        vop.mod += sim - sop
    if vip is not None and _next_left(vom) is None:
        vom.thread = vip
        vom.mod += sip - som
        ancestor = v
    return ancestor


def _first_walk(v: _TreeNode) -> None:
    siblings = v.parent.children
    w = siblings[v.index - 1] if v.index else None
    if v.children:
        _execute_shifts(v)
        midpoint = (v.children[0].prelim + v.children[-1].prelim) / 2
        if w is not None:
            v.prelim = w.prelim + _separation(v, w)
            v.mod = v.prelim - midpoint
        else:
            v.prelim = midpoint
    elif w is not None:
        v.prelim = w.prelim + _separation(v, w)
    v.parent.anchor = _apportion(v, w, v.parent.anchor or siblings[0])


def _tidy_tree(root: _TreeNode) -> List[_TreeNode]:
    """Position *root*'s tree in place; returns its nodes breadth-first."""
    sentinel = _TreeNode('', None, 0, -1)
    sentinel.children = [root]
    root.parent = sentinel

    order: List[_TreeNode] = []
    queue = deque([root])
    while queue:
        node = queue.popleft()
        order.append(node)
        queue.extend(node.children)

    # Children before parents, left siblings before right ones.
    for node in _post_order(root):
        _first_walk(node)

    sentinel.mod = -root.prelim
    for node in order:
        node.x = node.prelim + node.parent.mod
        node.mod += node.parent.mod

    root.parent = None
    return order


def _post_order(root: _TreeNode) -> List[_TreeNode]:
    result: List[_TreeNode] = []
    stack: List[Tuple[_TreeNode, bool]] = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded:
            result.append(node)
            continue
        stack.append((node, True))
        for child in reversed(node.children):
            stack.append((child, False))
    return result


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def layout(
    graph: Dict[str, Any],
    visibility: Optional[Visibility] = None,
    viewer_label: str = 'You',
    selected_ids: Optional[Iterable[str]] = None,
) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """
    Return ``(positioned_nodes, styled_edges)`` for the rendering canvas.

    Node dicts carry ``id, label, type, position, color, level, parent,
    selected``; edge dicts carry ``id, source, target, type`` where ``type``
    is the edge style hint.
    """
    nodes = graph['nodes']
    is_visible = visibility or all_nodes(graph)
    selected = set(selected_ids or ())

    visible = [nid for nid in nodes if is_visible(nid)]
    parents = select_layout_parents(graph, visible)

    children: Dict[str, List[str]] = {VIEWER_NODE_ID: []}
    for nid in visible:
        children.setdefault(nid, [])
    for nid in visible:
        children[parents[nid] or VIEWER_NODE_ID].append(nid)

    root = _TreeNode(VIEWER_NODE_ID, None, 0, 0)
    queue = deque([root])
    while queue:
        tnode = queue.popleft()
        for i, cid in enumerate(children[tnode.id]):
            child = _TreeNode(cid, tnode, i, tnode.depth + 1)
            tnode.children.append(child)
            queue.append(child)

    positioned: List[Dict[str, Any]] = []
    styled_edges: List[Dict[str, Any]] = []

    for tnode in _tidy_tree(root):
        position = {'x': tnode.x * NODE_SPACING_X, 'y': tnode.depth * LEVEL_SPACING_Y}

        if tnode.id == VIEWER_NODE_ID:
            positioned.append({
                'id': VIEWER_NODE_ID,
                'label': viewer_label,
                'type': 'root',
                'position': position,
                'color': VIEWER_COLOR,
                'level': 0,
                'parent': None,
                'selected': False,
            })
            continue

        node = nodes[tnode.id]
        parent_id = parents[tnode.id]
        positioned.append({
            'id': node['id'],
            'label': node['label'],
            'type': node['type'],
            'position': position,
            'color': get_node_color(
                node['id'], parent_id, node['type'], node.get('color_override')
            ),
            'level': tnode.depth,
            'parent': parent_id,
            'selected': node['id'] in selected,
        })

        source = parent_id or VIEWER_NODE_ID
        styled_edges.append({
            'id': f'e-{source}-{node["id"]}',
            'source': source,
            'target': node['id'],
            'type': EDGE_STYLE,
        })

    logger.debug("Laid out %d node(s), %d edge(s)", len(positioned), len(styled_edges))
    return positioned, styled_edges
