"""
Owner of the current interest graph.

All pure graph operations (merge, custom node, delete, recolor) go through
``InterestGraphService`` which swaps in the new snapshot under a lock and
bumps a version counter.  Nothing ever edits a snapshot in place.

Generated merges need care: the text-generation call is slow and the graph
may change while it runs.  Only one generation may be in flight at a time
(a second request raises MergeInProgressError), and the returned path is
merged into the snapshot that is current when the result arrives, not the
one the request started from.  ``cancel_pending`` abandons the outstanding
request; its result is dropped when it comes back.
"""

import logging
import threading
from typing import Any, Dict, List, Optional

from config import Config
from graph_edits import delete_node, update_node_color
from graph_merge import MalformedPathError, add_custom_node, merge_path
from knowledge_base import initial_graph
from path_generator import PathGenerator
from recommendations import recommend
from selection_store import SelectionStore
from tree_layout import all_nodes, layout, personal_view

logger = logging.getLogger(__name__)

LAYOUT_MODES = ('global', 'personal')


class MergeInProgressError(Exception):
    """Raised when a generated merge is requested while another is outstanding."""


def _step_type(node_type: Optional[str]) -> str:
    """Step type that recreates a node; merged top-level categories come back as roots."""
    if node_type == 'root':
        return 'category'
    return node_type or 'entity'


class InterestGraphService:
    """Single owner of the graph snapshot shared by every API call."""

    def __init__(
        self,
        generator: Optional[PathGenerator] = None,
        store: Optional[SelectionStore] = None,
        graph: Optional[Dict[str, Any]] = None,
        viewer_label: Optional[str] = None,
    ):
        self.generator = generator or PathGenerator()
        self.store = store or SelectionStore()
        self.viewer_label = viewer_label or Config.VIEWER_LABEL

        base = graph if graph is not None else initial_graph(Config.SEED_BASE_HIERARCHY)
        self._graph = self._apply_custom_nodes(base)
        self._version = 0

        self._lock = threading.Lock()
        self._request_seq = 0
        self._in_flight: Optional[int] = None

    # ------------------------------------------------------------------
    # Snapshot access
    # ------------------------------------------------------------------

    @property
    def version(self) -> int:
        return self._version

    @property
    def is_busy(self) -> bool:
        return self._in_flight is not None

    def snapshot(self) -> Dict[str, Any]:
        return self._graph

    def _install(self, new_graph: Dict[str, Any]) -> None:
        """Replace the snapshot; caller holds the lock."""
        if new_graph is not self._graph:
            self._graph = new_graph
            self._version += 1

    def _apply_custom_nodes(self, graph: Dict[str, Any]) -> Dict[str, Any]:
        """Replay stored user-added nodes on top of the base graph."""
        for record in self.store.custom_nodes():
            parent_id = record.get('parent_id')
            if parent_id and parent_id not in graph['nodes']:
                logger.warning(
                    "Parent %s of custom node %s is gone; placing it at the top level",
                    parent_id, record['id'],
                )
                parent_id = None
            try:
                graph, _ = add_custom_node(
                    graph,
                    record['label'],
                    parent_id,
                    _step_type(record.get('type')),
                    node_id=record['id'],
                )
            except MalformedPathError as e:
                logger.warning("Skipping stored custom node %s: %s", record.get('id'), e.message)
        return graph

    # ------------------------------------------------------------------
    # Merges
    # ------------------------------------------------------------------

    def generate_and_merge(self, query: str) -> Dict[str, Any]:
        """
        Ask the text generator for a path and merge it.

        Raises MergeInProgressError when another generation is outstanding
        and lets GenerationError through untouched; in both cases the graph
        is unchanged.
        """
        with self._lock:
            if self._in_flight is not None:
                raise MergeInProgressError('A merge request is already in progress')
            self._request_seq += 1
            ticket = self._request_seq
            self._in_flight = ticket
            graph = self._graph

        try:
            result = self.generator.generate(query, graph)
        except Exception:
            with self._lock:
                if self._in_flight == ticket:
                    self._in_flight = None
            raise

        with self._lock:
            if self._in_flight != ticket:
                logger.info("Discarding result for cancelled query '%s'", query)
                return {**result, 'applied': False, 'version': self._version}

            self._in_flight = None
            before = self._graph
            after = merge_path(before, result['path'])
            self._install(after)

            return {
                **result,
                'applied': True,
                'nodes_added': len(after['nodes']) - len(before['nodes']),
                'edges_added': len(after['edges']) - len(before['edges']),
                'version': self._version,
            }

    def cancel_pending(self) -> bool:
        """Abandon the outstanding generation, if any; returns True when one was."""
        with self._lock:
            cancelled = self._in_flight is not None
            self._in_flight = None
        if cancelled:
            logger.info("Cancelled outstanding merge request")
        return cancelled

    def merge_path(self, path: List[Dict[str, Any]]) -> Dict[str, Any]:
        with self._lock:
            self._install(merge_path(self._graph, path))
            return self._graph

    def add_custom_node(
        self,
        name: str,
        parent_id: Optional[str] = None,
        node_type: str = 'entity',
    ) -> Dict[str, Any]:
        """Add a user-created node and remember it in the store; returns the node."""
        with self._lock:
            existed = set(self._graph['nodes'])
            new_graph, node_id = add_custom_node(self._graph, name, parent_id, node_type)
            self._install(new_graph)
            node = new_graph['nodes'][node_id]

            if node_id not in existed:
                self.store.add_custom_node_record({
                    'id': node_id,
                    'label': node['label'],
                    'type': _step_type(node['type']),
                    'parent_id': parent_id,
                })
        return node

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def delete_node(self, node_id: str, cascade: bool = False) -> List[str]:
        """Delete a node (and its subtree with *cascade*); returns removed ids."""
        with self._lock:
            before = set(self._graph['nodes'])
            self._install(delete_node(self._graph, node_id, cascade))
            removed = sorted(before - set(self._graph['nodes']))

            if removed:
                self.store.deselect(removed)
                self.store.remove_custom_nodes(removed)
        return removed

    def recolor(self, node_id: str, color: Optional[str]) -> bool:
        """Set a node's colour override; returns False when the node is unknown."""
        with self._lock:
            if node_id not in self._graph['nodes']:
                return False
            self._install(update_node_color(self._graph, node_id, color))
            return True

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    def layout(self, mode: str = 'global', viewer_label: Optional[str] = None):
        if mode not in LAYOUT_MODES:
            raise ValueError(f'Unknown layout mode {mode!r}')

        graph = self._graph
        selected = self.store.selected_ids()
        visibility = personal_view(graph, selected) if mode == 'personal' else all_nodes(graph)
        return layout(graph, visibility, viewer_label or self.viewer_label, selected)

    def recommendations(self, limit: int = 10) -> List[Dict[str, Any]]:
        return recommend(self._graph, self.store.selected_ids(), limit)
