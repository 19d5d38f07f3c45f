"""
Text-generation client that turns a free-text interest into a graph path.

Given a query ("TDWP") and the current graph, the model is asked for::

    {
      "disambiguation": "Metalcore band from Missouri",
      "path": [
        {"name": "Music", "type": "category"},
        {"name": "Metalcore", "type": "category"},
        {"name": "The Devil Wears Prada", "type": "entity",
         "attributes": {"origin": "USA"}}
      ]
    }

The existing top-level labels and a summary of the graph go into the prompt
so the model reuses categories instead of inventing near-duplicates.

Every failure (network, HTTP status, empty or non-JSON output, schema
violation) is raised as GenerationError; callers treat it as retryable and
leave the graph untouched.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

import requests

from config import Config
from graph_merge import MalformedPathError, graph_summary, validate_path

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r'```(?:json)?\s*|\s*```')


class GenerationError(Exception):
    """Raised when the text-generation call fails or returns an unusable path."""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


PROMPT_TEMPLATE = """
You are an expert ontology engineer.
Identify the most likely meaning of the term '{query}'.

Context (Existing Root Categories): {roots}
Existing graph (labels, types and children): {summary}

If it fits an existing root category, map it there and reuse existing
sub-categories where they fit. If it requires a new category, define it.
Output a hierarchical path from Root -> Leaf.

Return ONLY valid JSON matching this schema (no markdown formatting):
{{
  "disambiguation": "string description of what this is",
  "path": [
    {{ "name": "Root Category", "type": "category" }},
    {{ "name": "Sub Category", "type": "category" }},
    {{ "name": "Entity Name", "type": "entity", "attributes": {{ "key": "value" }} }}
  ]
}}
"""


def parse_generated_path(text: str) -> Dict[str, Any]:
    """
    Parse raw model output into ``{'disambiguation', 'path'}``.

    Markdown code fences are stripped first; the path is validated with the
    same rules the merge engine applies.
    """
    if not text or not text.strip():
        raise GenerationError('No content received from the model')

    cleaned = _CODE_FENCE.sub('', text).strip()
    try:
        parsed = json.loads(cleaned)
    except ValueError as e:
        raise GenerationError(
            f'Model output is not valid JSON: {e}', {'preview': cleaned[:200]}
        ) from e

    if not isinstance(parsed, dict):
        raise GenerationError('Model output is not a JSON object')

    try:
        path = validate_path(parsed.get('path'))
    except MalformedPathError as e:
        raise GenerationError(f'Model returned a malformed path: {e.message}', e.details) from e

    disambiguation = parsed.get('disambiguation')
    return {
        'disambiguation': disambiguation if isinstance(disambiguation, str) else '',
        'path': path,
    }


class PathGenerator:
    """Calls the Gemini ``generateContent`` REST endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        fallback_model: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout: Optional[int] = None,
    ):
        self.api_key = api_key if api_key is not None else Config.GEMINI_API_KEY
        self.model = model or Config.GEMINI_MODEL
        self.fallback_model = fallback_model if fallback_model is not None else Config.GEMINI_FALLBACK_MODEL
        self.api_base = (api_base or Config.GEMINI_API_BASE).rstrip('/')
        self.timeout = timeout or Config.GENERATION_TIMEOUT

    def build_prompt(self, query: str, graph: Dict[str, Any]) -> str:
        summary = graph_summary(graph)
        return PROMPT_TEMPLATE.format(
            query=query,
            roots=', '.join(summary['roots']),
            summary=json.dumps(summary['nodes'], ensure_ascii=False),
        )

    def generate(self, query: str, graph: Dict[str, Any]) -> Dict[str, Any]:
        """Return ``{'disambiguation': str, 'path': [steps]}`` for *query*."""
        if not self.api_key:
            raise GenerationError('GEMINI_API_KEY is not configured')
        if not query or not query.strip():
            raise GenerationError('Query is empty')

        prompt = self.build_prompt(query.strip(), graph)
        logger.info("Generating path for query '%s' with %s", query, self.model)

        try:
            text = self._call_model(self.model, prompt)
        except GenerationError as e:
            if not self.fallback_model or self.fallback_model == self.model:
                raise
            logger.warning(
                "Model %s failed (%s), retrying with %s",
                self.model, e.message, self.fallback_model,
            )
            text = self._call_model(self.fallback_model, prompt)

        result = parse_generated_path(text)
        logger.info(
            "Generated path: %s", ' -> '.join(step['name'] for step in result['path'])
        )
        return result

    def _call_model(self, model: str, prompt: str) -> str:
        url = f'{self.api_base}/models/{model}:generateContent'
        payload = {'contents': [{'parts': [{'text': prompt}]}]}

        try:
            response = requests.post(
                url,
                params={'key': self.api_key},
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise GenerationError(f'Text generation request failed: {e}') from e

        if response.status_code != 200:
            raise GenerationError(
                f'Text generation API returned {response.status_code}',
                {'model': model, 'status': response.status_code},
            )

        try:
            body = response.json()
        except ValueError as e:
            raise GenerationError('Text generation API returned a non-JSON body') from e

        return _extract_text(body)


def _extract_text(body: Any) -> str:
    if not isinstance(body, dict):
        raise GenerationError('Text generation API returned an unexpected body')
    candidates: List[Dict[str, Any]] = body.get('candidates') or []
    if not candidates:
        raise GenerationError('Text generation API returned no candidates')
    parts = (candidates[0].get('content') or {}).get('parts') or []
    return ''.join(part.get('text', '') for part in parts if isinstance(part, dict))
