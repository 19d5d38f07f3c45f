import copy

import pytest

from graph_merge import (
    MalformedPathError,
    add_custom_node,
    empty_graph,
    graph_summary,
    merge_path,
    validate_path,
)
from knowledge_base import initial_graph


def _path(*names, leaf='entity'):
    steps = [{'name': n, 'type': 'category'} for n in names[:-1]]
    steps.append({'name': names[-1], 'type': leaf})
    return steps


def _edge_pairs(graph):
    return [(e['source'], e['target']) for e in graph['edges']]


@pytest.fixture()
def roots():
    return initial_graph()


def test_end_to_end_scenario(roots):
    assert set(roots['nodes']) == {'music', 'sports', 'movies'}

    g1 = merge_path(roots, _path('Music', 'Rock', 'Pink Floyd'))
    assert len(g1['nodes']) == 5
    assert set(g1['nodes']) == {'music', 'sports', 'movies', 'rock', 'pink-floyd'}
    assert _edge_pairs(g1) == [('music', 'rock'), ('rock', 'pink-floyd')]

    g2 = merge_path(g1, _path('Music', 'Rock', 'Led Zeppelin'))
    assert len(g2['nodes']) == len(g1['nodes']) + 1
    assert len(g2['edges']) == len(g1['edges']) + 1
    assert ('rock', 'led-zeppelin') in _edge_pairs(g2)


def test_node_fields_on_creation(roots):
    path = _path('Music', 'Rock', 'Pink Floyd')
    path[-1]['attributes'] = {'origin': 'UK'}
    graph = merge_path(roots, path)

    rock = graph['nodes']['rock']
    assert rock['label'] == 'Rock'
    assert rock['type'] == 'category'

    floyd = graph['nodes']['pink-floyd']
    assert floyd['type'] == 'entity'
    assert floyd['attributes'] == {'origin': 'UK'}
    assert floyd['position'] == {'x': 0, 'y': 0}
    assert floyd['color_override'] is None


def test_top_level_category_becomes_root():
    graph = merge_path(empty_graph(), _path('Books', 'Fantasy', 'Earthsea'))
    assert graph['nodes']['books']['type'] == 'root'
    assert graph['nodes']['fantasy']['type'] == 'category'


def test_top_level_entity_keeps_its_type():
    graph = merge_path(empty_graph(), [{'name': 'Chess', 'type': 'entity'}])
    assert graph['nodes']['chess']['type'] == 'entity'


def test_merge_is_idempotent(roots):
    path = _path('Movies', 'Sci-Fi', 'Interstellar')
    once = merge_path(roots, path)
    twice = merge_path(once, path)
    assert twice == once


def test_merge_does_not_mutate_input(roots):
    before = copy.deepcopy(roots)
    merge_path(roots, _path('Music', 'Jazz', 'Miles Davis'))
    assert roots == before


def test_cross_link_reuses_existing_node(roots):
    g1 = merge_path(roots, _path('Movies', 'Sci-Fi', 'Dune'))
    dune = g1['nodes']['dune']

    g2 = merge_path(g1, _path('Books', 'Dune'))

    assert g2['nodes']['dune'] is dune
    new_edges = [p for p in _edge_pairs(g2) if p not in _edge_pairs(g1)]
    assert new_edges == [('books', 'dune')]
    # first path intact
    assert ('movies', 'sci-fi') in _edge_pairs(g2)
    assert ('sci-fi', 'dune') in _edge_pairs(g2)


def test_cross_link_does_not_overwrite_label_or_attributes(roots):
    g1 = merge_path(roots, [
        {'name': 'Movies', 'type': 'category'},
        {'name': 'Dune', 'type': 'entity', 'attributes': {'year': '2021'}},
    ])
    g2 = merge_path(g1, [
        {'name': 'Books', 'type': 'category'},
        {'name': 'DUNE', 'type': 'entity', 'attributes': {'author': 'Herbert'}},
    ])
    assert g2['nodes']['dune']['label'] == 'Dune'
    assert g2['nodes']['dune']['attributes'] == {'year': '2021'}


def test_fuzzy_match_traverses_existing_node():
    g1 = merge_path(empty_graph(), [{'name': 'Sci-Fi', 'type': 'category'}])
    g2 = merge_path(g1, _path('Scifi', 'Dune'))

    assert 'scifi' not in g2['nodes']
    assert _edge_pairs(g2) == [('sci-fi', 'dune')]


def test_short_distinct_names_create_two_nodes():
    g1 = merge_path(empty_graph(), [{'name': 'Cat', 'type': 'category'}])
    g2 = merge_path(g1, [{'name': 'Dog', 'type': 'category'}])
    assert set(g2['nodes']) == {'cat', 'dog'}


def test_short_close_names_falsely_merge():
    g1 = merge_path(empty_graph(), [{'name': 'Cat', 'type': 'category'}])
    g2 = merge_path(g1, [{'name': 'Car', 'type': 'category'}])
    assert set(g2['nodes']) == {'cat'}


def test_matching_is_scoped_to_siblings(roots):
    # "Rock" under Music must not be found from under Sports.
    g1 = merge_path(roots, _path('Music', 'Rock', 'Pink Floyd'))
    g2 = merge_path(g1, _path('Sports', 'Climbing', 'Rock', leaf='category'))

    # Not a sibling of Climbing, so the existing node is cross-linked.
    assert ('climbing', 'rock') in _edge_pairs(g2)
    assert len([n for n in g2['nodes'] if n.startswith('rock')]) == 1


def test_no_duplicate_edges_on_repeated_cross_link(roots):
    g1 = merge_path(roots, _path('Movies', 'Sci-Fi', 'Dune'))
    g2 = merge_path(g1, _path('Books', 'Dune'))
    g3 = merge_path(g2, _path('Books', 'Dune'))
    pairs = _edge_pairs(g3)
    assert len(pairs) == len(set(pairs))


def test_cross_link_that_would_cycle_creates_distinct_node():
    graph = merge_path(empty_graph(), _path('Music', 'Rock', 'Indie', leaf='category'))
    # "Music" under Indie: canonical id exists and is an ancestor of Indie.
    cycled = merge_path(graph, _path('Music', 'Rock', 'Indie', 'Music', leaf='category'))

    assert 'music-2' in cycled['nodes']
    assert ('indie', 'music') not in _edge_pairs(cycled)
    assert ('indie', 'music-2') in _edge_pairs(cycled)

    # and stays idempotent
    assert merge_path(cycled, _path('Music', 'Rock', 'Indie', 'Music', leaf='category')) == cycled


def test_self_link_creates_distinct_node():
    graph = merge_path(empty_graph(), _path('Rock', 'Rock', leaf='category'))
    assert set(graph['nodes']) == {'rock', 'rock-2'}
    assert _edge_pairs(graph) == [('rock', 'rock-2')]


@pytest.mark.parametrize('bad_path', [
    [],
    'Music',
    [{'type': 'category'}],
    [{'name': '   ', 'type': 'category'}],
    [{'name': 'Music', 'type': 'genre'}],
    [{'name': 'Music', 'type': 'category', 'attributes': ['x']}],
    [{'name': 'Music', 'type': 'category'}, 'Rock'],
])
def test_malformed_path_rejected_before_merge(roots, bad_path):
    before = copy.deepcopy(roots)
    with pytest.raises(MalformedPathError):
        merge_path(roots, bad_path)
    assert roots == before


def test_partially_valid_path_is_not_applied(roots):
    path = _path('Music', 'Rock', 'Pink Floyd') + [{'name': ''}]
    with pytest.raises(MalformedPathError):
        merge_path(roots, path)


def test_validate_path_defaults_type_and_strips_name():
    steps = validate_path([{'name': '  Music '}])
    assert steps == [{'name': 'Music', 'type': 'category', 'attributes': {}}]


def test_add_custom_node_under_parent(roots):
    graph, node_id = add_custom_node(roots, 'Porcupine Tree', 'music')
    assert node_id.startswith('custom-')
    assert graph['nodes'][node_id]['label'] == 'Porcupine Tree'
    assert ('music', node_id) in _edge_pairs(graph)
    assert node_id not in roots['nodes']


def test_add_custom_node_reuses_matching_sibling(roots):
    g1 = merge_path(roots, _path('Music', 'Rock', leaf='category'))
    g2, node_id = add_custom_node(g1, 'Rocks', 'music')
    assert node_id == 'rock'
    assert g2['nodes'] == g1['nodes']


def test_add_custom_node_with_fixed_id(roots):
    graph, node_id = add_custom_node(roots, 'Knitting', None, 'category', node_id='custom-abc')
    assert node_id == 'custom-abc'
    assert graph['nodes']['custom-abc']['type'] == 'root'


def test_add_custom_node_unknown_parent(roots):
    with pytest.raises(MalformedPathError):
        add_custom_node(roots, 'Orphan', 'no-such-node')


def test_graph_summary(roots):
    graph = merge_path(roots, _path('Music', 'Rock', 'Pink Floyd'))
    summary = graph_summary(graph)
    assert summary['roots'] == ['Music', 'Sports', 'Movies']
    music = next(n for n in summary['nodes'] if n['label'] == 'Music')
    assert music['children'] == ['Rock']
