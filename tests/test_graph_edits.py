import copy

import pytest

from graph_edits import delete_node, descendants, update_node_color
from graph_merge import empty_graph, merge_path


@pytest.fixture()
def tree():
    """root -> A -> {B, C}"""
    graph = merge_path(empty_graph(), [
        {'name': 'Root', 'type': 'category'},
        {'name': 'Alpha', 'type': 'category'},
        {'name': 'Beta', 'type': 'entity'},
    ])
    return merge_path(graph, [
        {'name': 'Root', 'type': 'category'},
        {'name': 'Alpha', 'type': 'category'},
        {'name': 'Gamma', 'type': 'entity'},
    ])


def test_fixture_shape(tree):
    assert set(tree['nodes']) == {'root', 'alpha', 'beta', 'gamma'}
    assert len(tree['edges']) == 3


def test_cascade_delete_removes_subtree(tree):
    graph = delete_node(tree, 'alpha', cascade=True)
    assert set(graph['nodes']) == {'root'}
    assert graph['edges'] == []


def test_non_cascade_delete_leaves_orphans(tree):
    graph = delete_node(tree, 'alpha', cascade=False)
    assert set(graph['nodes']) == {'root', 'beta', 'gamma'}
    assert graph['edges'] == []
    targets = {e['target'] for e in graph['edges']}
    assert 'beta' not in targets and 'gamma' not in targets


def test_cascade_reaches_nodes_shared_with_other_parents(tree):
    # Gamma also sits under Delta; cascading from Alpha still removes it.
    shared = merge_path(tree, [
        {'name': 'Delta', 'type': 'category'},
        {'name': 'Gamma', 'type': 'entity'},
    ])
    graph = delete_node(shared, 'alpha', cascade=True)
    assert 'gamma' not in graph['nodes']
    assert 'delta' in graph['nodes']
    assert all(e['target'] != 'gamma' for e in graph['edges'])


def test_descendants_counts_diamond_once():
    graph = merge_path(empty_graph(), [
        {'name': 'Top', 'type': 'category'},
        {'name': 'Left', 'type': 'category'},
        {'name': 'Bottom', 'type': 'entity'},
    ])
    graph = merge_path(graph, [
        {'name': 'Top', 'type': 'category'},
        {'name': 'Right', 'type': 'category'},
        {'name': 'Bottom', 'type': 'entity'},
    ])
    assert descendants(graph, 'top') == {'left', 'right', 'bottom'}


def test_delete_missing_node_is_noop(tree):
    assert delete_node(tree, 'nope', cascade=True) is tree
    assert delete_node(tree, 'nope') is tree


def test_delete_does_not_mutate_input(tree):
    before = copy.deepcopy(tree)
    delete_node(tree, 'alpha', cascade=True)
    assert tree == before


def test_update_node_color(tree):
    graph = update_node_color(tree, 'beta', '#123456')
    assert graph['nodes']['beta']['color_override'] == '#123456'
    assert tree['nodes']['beta']['color_override'] is None


def test_update_node_color_clear(tree):
    graph = update_node_color(update_node_color(tree, 'beta', '#123456'), 'beta', None)
    assert graph['nodes']['beta']['color_override'] is None


def test_update_color_missing_node_is_noop(tree):
    assert update_node_color(tree, 'nope', '#000000') is tree
