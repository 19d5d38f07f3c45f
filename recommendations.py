"""
Sibling-based interest recommendations.

If you like a node, the other children of each of its parents are suggested
("Because you like Interstellar" -> Dune).  When that yields fewer than
MIN_RECOMMENDATIONS items, unselected top-level categories are added as
popular fallbacks.
"""

from typing import Any, Dict, Iterable, List, Set

from graph_merge import child_ids, parent_ids, top_level_nodes

MIN_RECOMMENDATIONS = 3
MAX_RECOMMENDATIONS = 10


def recommend(
    graph: Dict[str, Any],
    selected_ids: Iterable[str],
    limit: int = MAX_RECOMMENDATIONS,
) -> List[Dict[str, Any]]:
    """Return ``[{'id', 'name', 'category', 'reason'}]``, most relevant first."""
    nodes = graph['nodes']
    edges = graph['edges']
    selected = [sid for sid in selected_ids if sid in nodes]
    selected_set = set(selected)

    recommendations: List[Dict[str, Any]] = []
    seen: Set[str] = set()

    def add(node_id: str, category: str, reason: str) -> None:
        if node_id in seen or node_id in selected_set:
            return
        seen.add(node_id)
        recommendations.append({
            'id': node_id,
            'name': nodes[node_id]['label'],
            'category': category,
            'reason': reason,
        })

    for sid in selected:
        liked = nodes[sid]['label']
        for pid in parent_ids(edges, sid):
            for sibling in child_ids(edges, pid):
                if sibling != sid and sibling in nodes:
                    add(sibling, nodes[pid]['label'], f'Because you like {liked}')

    if len(recommendations) < MIN_RECOMMENDATIONS:
        for node in top_level_nodes(graph):
            add(node['id'], 'General', 'Popular Category')

    return recommendations[:limit]
