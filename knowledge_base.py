"""
Seed data for a fresh interest graph.

A new session starts with three empty top-level categories.  The richer base
hierarchy can be merged in as well (``SEED_BASE_HIERARCHY=true``); it is kept
as plain paths so it goes through the same merge rules as generated ones.
"""

from typing import Any, Dict, List

from graph_matching import canonicalize
from graph_merge import empty_graph, make_node, merge_path

INITIAL_ROOTS = ['Music', 'Sports', 'Movies']


def _path(*steps: str, leaf_type: str = 'entity') -> List[Dict[str, Any]]:
    path = [{'name': s, 'type': 'category'} for s in steps[:-1]]
    path.append({'name': steps[-1], 'type': leaf_type})
    return path


BASE_PATHS: List[List[Dict[str, Any]]] = [
    _path('Sports', 'Racing', 'Formula 1', 'Teams', 'Scuderia Ferrari'),
    _path('Sports', 'Racing', 'Formula 1', 'Teams', 'Red Bull Racing'),
    _path('Sports', 'Racing', 'Formula 1', 'Teams', 'Mercedes-AMG'),
    _path('Sports', 'Racing', 'Formula 1', 'Drivers (All Time)', 'Ayrton Senna'),
    _path('Sports', 'Racing', 'Formula 1', 'Drivers (All Time)', 'Michael Schumacher'),
    _path('Sports', 'Racing', 'MotoGP', 'Valentino Rossi'),
    _path('Sports', 'Racing', 'MotoGP', 'Marc Marquez'),
    _path('Sports', 'Basketball', 'NBA', 'LA Lakers'),
    _path('Sports', 'Basketball', 'NBA', 'Golden State Warriors'),
    _path('Movies', 'Sci-Fi', 'Interstellar'),
    _path('Movies', 'Sci-Fi', 'Dune'),
    _path('Movies', 'Directors', 'Christopher Nolan'),
    _path('Movies', 'Directors', 'Denis Villeneuve'),
    _path('Music', 'Rock', 'Pink Floyd'),
    _path('Music', 'Rock', 'Led Zeppelin'),
]


def initial_graph(include_base: bool = False) -> Dict[str, Any]:
    """The starting snapshot: the top-level roots, optionally the base hierarchy."""
    graph = empty_graph()
    for label in INITIAL_ROOTS:
        node = make_node(canonicalize(label), label, 'root')
        graph['nodes'][node['id']] = node

    if include_base:
        for path in BASE_PATHS:
            graph = merge_path(graph, path)
    return graph
