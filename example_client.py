"""
Example Python client for the Interest Map API
"""

import requests
import json


class InterestMapClient:
    """Client for interacting with the Interest Map API."""

    def __init__(self, base_url='http://localhost:5000'):
        """
        Initialize the client.

        Args:
            base_url: Base URL of the API server
        """
        self.base_url = base_url.rstrip('/')

    def health_check(self):
        """Check if the API is healthy."""
        response = requests.get(f'{self.base_url}/health')
        return response.json()

    def generate(self, query):
        """
        Turn a free-text interest into a path and merge it.

        Args:
            query: Interest to look up, e.g. "Pink Floyd"

        Returns:
            Dictionary with the disambiguation and merged path
        """
        response = requests.post(
            f'{self.base_url}/api/graph/generate',
            json={'query': query}
        )
        return response.json()

    def merge_path(self, path):
        """
        Merge an explicit root-to-leaf path.

        Args:
            path: List of {"name", "type"} steps
        """
        response = requests.post(
            f'{self.base_url}/api/graph/paths',
            json={'path': path}
        )
        return response.json()

    def add_node(self, name, parent_id=None):
        response = requests.post(
            f'{self.base_url}/api/graph/nodes',
            json={'name': name, 'parent_id': parent_id}
        )
        return response.json()

    def delete_node(self, node_id, cascade=False):
        response = requests.delete(
            f'{self.base_url}/api/graph/nodes/{node_id}',
            params={'cascade': 'true' if cascade else 'false'}
        )
        return response.json()

    def select(self, node_ids):
        response = requests.put(
            f'{self.base_url}/api/selections',
            json={'selected_ids': node_ids}
        )
        return response.json()

    def layout(self, mode='global'):
        """
        Fetch positioned nodes and edges.

        Args:
            mode: "global" for every node, "personal" for selections only
        """
        response = requests.get(
            f'{self.base_url}/api/graph/layout',
            params={'mode': mode}
        )
        return response.json()


# Example usage
if __name__ == '__main__':
    # Initialize client
    client = InterestMapClient()

    # Example 1: Health check
    print("=" * 50)
    print("Health Check")
    print("=" * 50)
    health = client.health_check()
    print(json.dumps(health, indent=2, ensure_ascii=False))
    print()

    # Example 2: Merge explicit paths
    print("=" * 50)
    print("Merge Paths")
    print("=" * 50)
    for leaf in ('Pink Floyd', 'Led Zeppelin'):
        result = client.merge_path([
            {'name': 'Music', 'type': 'category'},
            {'name': 'Rock', 'type': 'category'},
            {'name': leaf, 'type': 'entity'},
        ])
        print(f"{leaf}: version {result['data']['version']}")
    print()

    # Example 3: Personal layout
    print("=" * 50)
    print("Personal Layout")
    print("=" * 50)
    client.select(['pink-floyd'])
    layout = client.layout('personal')
    print(json.dumps(layout, indent=2, ensure_ascii=False))
    print()

    # Print summary
    if layout.get('success'):
        metadata = layout['data']['metadata']
        print("=" * 50)
        print("Summary")
        print("=" * 50)
        print(f"Total nodes: {metadata['total_nodes']}")
        print(f"Total edges: {metadata['total_edges']}")
