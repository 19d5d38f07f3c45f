import json

import pytest
import requests

from knowledge_base import initial_graph
from path_generator import GenerationError, PathGenerator, parse_generated_path


GOOD_OUTPUT = {
    'disambiguation': 'English rock band',
    'path': [
        {'name': 'Music', 'type': 'category'},
        {'name': 'Rock', 'type': 'category'},
        {'name': 'Pink Floyd', 'type': 'entity', 'attributes': {'origin': 'UK'}},
    ],
}


class MockResp:
    def __init__(self, body, status_code=200):
        self._body = body
        self.status_code = status_code

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


def _gemini_body(text):
    return {'candidates': [{'content': {'parts': [{'text': text}]}}]}


@pytest.fixture()
def generator():
    return PathGenerator(api_key='test-key', model='primary', fallback_model='backup',
                         api_base='http://llm.test/v1beta', timeout=5)


def test_parse_plain_json():
    result = parse_generated_path(json.dumps(GOOD_OUTPUT))
    assert result['disambiguation'] == 'English rock band'
    assert [s['name'] for s in result['path']] == ['Music', 'Rock', 'Pink Floyd']
    assert result['path'][2]['attributes'] == {'origin': 'UK'}


def test_parse_strips_code_fences():
    text = '```json\n' + json.dumps(GOOD_OUTPUT) + '\n```'
    assert parse_generated_path(text)['path'][0]['name'] == 'Music'


@pytest.mark.parametrize('text', [
    '',
    '   ',
    'not json at all',
    '[1, 2, 3]',
    json.dumps({'disambiguation': 'x'}),
    json.dumps({'path': [{'type': 'category'}]}),
    json.dumps({'path': [{'name': 'Music', 'type': 'planet'}]}),
])
def test_parse_rejects_bad_output(text):
    with pytest.raises(GenerationError):
        parse_generated_path(text)


def test_generate_calls_model(monkeypatch, generator):
    calls = []
    body = _gemini_body(json.dumps(GOOD_OUTPUT))

    def fake_post(url, params=None, json=None, timeout=None):
        calls.append({'url': url, 'params': params, 'json': json, 'timeout': timeout})
        return MockResp(body)

    monkeypatch.setattr(requests, 'post', fake_post)

    result = generator.generate('pink floyd', initial_graph())
    assert result['path'][-1]['name'] == 'Pink Floyd'
    assert calls[0]['url'] == 'http://llm.test/v1beta/models/primary:generateContent'
    assert calls[0]['params'] == {'key': 'test-key'}
    assert calls[0]['timeout'] == 5
    prompt = calls[0]['json']['contents'][0]['parts'][0]['text']
    assert "'pink floyd'" in prompt
    assert 'Music, Sports, Movies' in prompt


def test_generate_falls_back_to_second_model(monkeypatch, generator):
    urls = []

    def fake_post(url, **kwargs):
        urls.append(url)
        if 'primary' in url:
            return MockResp({}, status_code=503)
        return MockResp(_gemini_body(json.dumps(GOOD_OUTPUT)))

    monkeypatch.setattr(requests, 'post', fake_post)

    result = generator.generate('pink floyd', initial_graph())
    assert result['disambiguation'] == 'English rock band'
    assert [u.split('/')[-1] for u in urls] == [
        'primary:generateContent', 'backup:generateContent',
    ]


def test_generate_network_failure(monkeypatch, generator):
    def fake_post(url, **kwargs):
        raise requests.ConnectionError('boom')

    monkeypatch.setattr(requests, 'post', fake_post)
    with pytest.raises(GenerationError):
        generator.generate('pink floyd', initial_graph())


def test_generate_malformed_model_output(monkeypatch, generator):
    monkeypatch.setattr(requests, 'post', lambda *a, **k: MockResp(_gemini_body('Sure! Here it is')))
    with pytest.raises(GenerationError):
        generator.generate('pink floyd', initial_graph())


def test_generate_no_candidates(monkeypatch, generator):
    monkeypatch.setattr(requests, 'post', lambda *a, **k: MockResp({'candidates': []}))
    with pytest.raises(GenerationError):
        generator.generate('pink floyd', initial_graph())


def test_generate_non_json_body(monkeypatch, generator):
    monkeypatch.setattr(requests, 'post', lambda *a, **k: MockResp(ValueError('bad')))
    with pytest.raises(GenerationError):
        generator.generate('pink floyd', initial_graph())


def test_generate_requires_api_key():
    generator = PathGenerator(api_key='')
    with pytest.raises(GenerationError):
        generator.generate('pink floyd', initial_graph())


def test_generate_rejects_empty_query(generator):
    with pytest.raises(GenerationError):
        generator.generate('  ', initial_graph())
