"""
Interest Map Backend API
This Flask application maintains the interest graph and serves
render-ready tree layouts of it.
"""

from flask import Flask, request, jsonify
from flask_cors import CORS
import logging
from config import Config
from graph_merge import MalformedPathError
from graph_service import InterestGraphService, MergeInProgressError, LAYOUT_MODES
from path_generator import GenerationError
from selection_store import SelectionStore, JsonFileKeyValueStore

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)
client_logger = logging.getLogger('client')

CLIENT_LOG_LEVELS = {
    'debug': 'debug',
    'log': 'info',
    'info': 'info',
    'warn': 'warning',
    'warning': 'warning',
    'error': 'error',
}

# Initialize Flask app
app = Flask(__name__)
app.config['MAX_CONTENT_LENGTH'] = Config.MAX_CONTENT_LENGTH
CORS(app, origins=Config.CORS_ORIGINS)


def _build_service():
    backend = JsonFileKeyValueStore(Config.STORE_PATH) if Config.STORE_PATH else None
    if backend:
        logger.info(f"Persisting selections to {Config.STORE_PATH}")
    return InterestGraphService(store=SelectionStore(backend))


# Initialize the graph owner
graph_service = _build_service()


def _error(message, status):
    return jsonify({'success': False, 'error': message}), status


def _graph_payload():
    return {
        'graph': graph_service.snapshot(),
        'version': graph_service.version,
        'busy': graph_service.is_busy,
    }


@app.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({
        'status': 'healthy',
        'service': 'Interest Map API'
    }), 200


@app.route('/log', methods=['POST'])
def client_log():
    """
    Best-effort sink for front-end diagnostics.

    Request Body:
    {
        "level": "info",
        "message": "text",
        "timestamp": "2024-01-01T00:00:00Z"
    }
    """
    data = request.get_json(silent=True) or {}
    level = CLIENT_LOG_LEVELS.get(str(data.get('level', 'info')).lower(), 'info')
    getattr(client_logger, level)(f"[{data.get('timestamp', '')}] {data.get('message', '')}")
    return jsonify({'success': True}), 200


@app.route('/api/graph', methods=['GET'])
def get_graph():
    """Return the raw graph snapshot and its version."""
    return jsonify({'success': True, 'data': _graph_payload()}), 200


@app.route('/api/graph/layout', methods=['GET'])
def get_layout():
    """
    Positioned nodes and styled edges for the canvas.

    Query: ?mode=global|personal&viewer=You
    """
    mode = request.args.get('mode', 'global')
    if mode not in LAYOUT_MODES:
        return _error(f'mode must be one of {", ".join(LAYOUT_MODES)}', 400)

    try:
        nodes, edges = graph_service.layout(mode, request.args.get('viewer'))
        return jsonify({
            'success': True,
            'data': {
                'nodes': nodes,
                'edges': edges,
                'metadata': {
                    'mode': mode,
                    'total_nodes': len(nodes),
                    'total_edges': len(edges),
                    'version': graph_service.version,
                }
            }
        }), 200
    except Exception as e:
        logger.error(f"Error computing layout: {str(e)}")
        return _error(str(e), 500)


@app.route('/api/graph/generate', methods=['POST'])
def generate_path():
    """
    Turn a free-text interest into a path and merge it.

    Request Body:
    {
        "query": "Pink Floyd"
    }

    Response:
    {
        "success": true,
        "data": {
            "disambiguation": "...",
            "path": [...],
            "applied": true,
            "nodes_added": 1,
            "edges_added": 1,
            "version": 3
        }
    }
    """
    data = request.get_json(silent=True)
    if not data or not isinstance(data.get('query'), str) or not data['query'].strip():
        return _error('No query provided', 400)

    try:
        result = graph_service.generate_and_merge(data['query'])
        return jsonify({'success': True, 'data': result}), 200
    except MergeInProgressError as e:
        return _error(str(e), 409)
    except GenerationError as e:
        logger.error(f"Path generation failed: {e.message}")
        return jsonify({
            'success': False,
            'error': e.message,
            'retryable': True
        }), 502
    except Exception as e:
        logger.error(f"Error merging generated path: {str(e)}")
        return _error(str(e), 500)


@app.route('/api/graph/cancel', methods=['POST'])
def cancel_generation():
    """Abandon the outstanding generation request."""
    cancelled = graph_service.cancel_pending()
    return jsonify({'success': True, 'data': {'cancelled': cancelled}}), 200


@app.route('/api/graph/paths', methods=['POST'])
def merge_path():
    """
    Merge an explicit path.

    Request Body:
    {
        "path": [{"name": "Music", "type": "category"}, ...]
    }
    """
    data = request.get_json(silent=True)
    if not data or 'path' not in data:
        return _error('No path provided', 400)

    try:
        graph_service.merge_path(data['path'])
        return jsonify({'success': True, 'data': _graph_payload()}), 200
    except MalformedPathError as e:
        return _error(e.message, 400)
    except Exception as e:
        logger.error(f"Error merging path: {str(e)}")
        return _error(str(e), 500)


@app.route('/api/graph/nodes', methods=['POST'])
def create_custom_node():
    """
    Add a user-created node.

    Request Body:
    {
        "name": "Porcupine Tree",
        "parent_id": "rock",
        "type": "entity"
    }
    """
    data = request.get_json(silent=True)
    if not data:
        return _error('No JSON data provided', 400)

    try:
        node = graph_service.add_custom_node(
            data.get('name'),
            data.get('parent_id'),
            data.get('type') or 'entity',
        )
        return jsonify({'success': True, 'data': node}), 201
    except MalformedPathError as e:
        return _error(e.message, 400)
    except Exception as e:
        logger.error(f"Error adding custom node: {str(e)}")
        return _error(str(e), 500)


@app.route('/api/graph/nodes/<node_id>', methods=['DELETE'])
def remove_node(node_id):
    """Delete a node. Query: ?cascade=true|false (default false)."""
    cascade = request.args.get('cascade', 'false').lower() == 'true'
    removed = graph_service.delete_node(node_id, cascade)
    return jsonify({
        'success': True,
        'data': {'removed': removed, 'version': graph_service.version}
    }), 200


@app.route('/api/graph/nodes/<node_id>/color', methods=['PATCH'])
def recolor_node(node_id):
    """
    Override a node's colour; a null colour clears the override.

    Request Body:
    {
        "color": "#22d3ee"
    }
    """
    data = request.get_json(silent=True)
    if data is None or 'color' not in data:
        return _error('No color provided', 400)

    color = data['color']
    if color is not None and not isinstance(color, str):
        return _error('color must be a string or null', 400)

    updated = graph_service.recolor(node_id, color)
    return jsonify({
        'success': True,
        'data': {'updated': updated, 'version': graph_service.version}
    }), 200


@app.route('/api/selections', methods=['GET'])
def get_selections():
    return jsonify({'success': True, 'data': graph_service.store.selected_ids()}), 200


@app.route('/api/selections', methods=['PUT'])
def put_selections():
    """
    Replace the selected node ids.

    Request Body:
    {
        "selected_ids": ["pink-floyd", "dune"]
    }
    """
    data = request.get_json(silent=True)
    if not data or not isinstance(data.get('selected_ids'), list):
        return _error('selected_ids must be an array', 400)

    selected = graph_service.store.set_selected_ids(data['selected_ids'])
    return jsonify({'success': True, 'data': selected}), 200


@app.route('/api/selections/<node_id>/toggle', methods=['POST'])
def toggle_selection(node_id):
    selected = graph_service.store.toggle(node_id)
    return jsonify({
        'success': True,
        'data': {'id': node_id, 'selected': selected}
    }), 200


@app.route('/api/recommendations', methods=['GET'])
def get_recommendations():
    """Sibling recommendations for the current selections."""
    try:
        limit = int(request.args.get('limit', 10))
    except ValueError:
        return _error('limit must be an integer', 400)

    return jsonify({
        'success': True,
        'data': graph_service.recommendations(limit)
    }), 200


if __name__ == '__main__':
    app.run(host=Config.HOST, port=Config.PORT, debug=Config.DEBUG)
