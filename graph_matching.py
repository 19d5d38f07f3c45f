"""
Label canonicalization and node matching for the interest graph.

Two labels denote the same node when either

  1. their canonical ids are equal (``canonicalize`` lowercases, trims and
     turns every character outside ``[a-z0-9]`` into ``-``), or
  2. their case-insensitive Levenshtein distance is at most
     FUZZY_MATCH_THRESHOLD.  This absorbs pluralisation, typos and minor
     rewording coming back from the text-generation step ("Sci-Fi" vs
     "Scifi").

The threshold is aggressive for very short labels: "Cat" and "Car" are one
edit apart and will be treated as the same node.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, Optional

import jellyfish

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Tuneable constants
# ---------------------------------------------------------------------------
FUZZY_MATCH_THRESHOLD: int = 2   # max edit distance for a fuzzy match

_NON_CANONICAL = re.compile(r'[^a-z0-9]')


def canonicalize(text: str) -> str:
    """Turn free text into a stable node id ("Pink Floyd" -> "pink-floyd")."""
    return _NON_CANONICAL.sub('-', text.lower().strip())


def label_distance(a: str, b: str) -> int:
    """Case-insensitive Levenshtein distance between two labels."""
    return jellyfish.levenshtein_distance(a.lower(), b.lower())


def is_same_node(
    node_label: str,
    step_name: str,
    node_id: str,
    step_canonical_id: str,
) -> bool:
    """Return True when an existing node and a path step denote the same thing."""
    if node_id == step_canonical_id:
        return True
    return label_distance(node_label, step_name) <= FUZZY_MATCH_THRESHOLD


def find_matching_node(
    candidates: Iterable[Dict[str, Any]],
    step_name: str,
) -> Optional[Dict[str, Any]]:
    """
    Return the first candidate node that matches *step_name*, or None.

    Candidates are checked in the order given, so callers control the
    tie-break when several nodes are within the fuzzy threshold.
    """
    step_id = canonicalize(step_name)
    for node in candidates:
        if is_same_node(node.get('label', ''), step_name, node['id'], step_id):
            logger.debug(
                "Matched '%s' to existing node '%s' (%s)",
                step_name, node.get('label'), node['id'],
            )
            return node
    return None
