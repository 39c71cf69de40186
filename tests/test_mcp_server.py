import io
import json
from urllib.error import HTTPError, URLError

import mcp_server


class FakeHeaders:
    def get_content_charset(self):
        return 'utf-8'


class FakeResponse:
    status = 200
    headers = FakeHeaders()

    def __init__(self, body):
        self._body = body

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def test_get_tools_wrap_json_payload(monkeypatch):
    seen = []

    def fake_urlopen(request, timeout=None):
        seen.append((request.get_method(), request.full_url))
        return FakeResponse(json.dumps([
            {'id': 1, 'agent': 'DevBot'},
            {'id': 2, 'agent': 'OpsBot'},
        ]).encode('utf-8'))

    monkeypatch.setattr(mcp_server, 'urlopen', fake_urlopen)
    result = mcp_server.task_history('OpsBot')

    assert result['ok'] is True
    assert result['status_code'] == 200
    assert result['data'] == [{'id': 2, 'agent': 'OpsBot'}]
    assert seen == [('GET', f'{mcp_server.BASE_URL}/api/task-history')]


def test_post_tools_send_json_body(monkeypatch):
    captured = {}

    def fake_urlopen(request, timeout=None):
        captured['method'] = request.get_method()
        captured['url'] = request.full_url
        captured['body'] = json.loads(request.data.decode('utf-8'))
        return FakeResponse(b'{"success": true}')

    monkeypatch.setattr(mcp_server, 'urlopen', fake_urlopen)
    result = mcp_server.set_agent_status('DataBot', 'busy')

    assert result['data'] == {'success': True}
    assert captured == {
        'method': 'POST',
        'url': f'{mcp_server.BASE_URL}/api/agent-status',
        'body': {'agent': 'DataBot', 'status': 'busy'},
    }


def test_http_errors_are_reported_in_envelope(monkeypatch):
    def not_found(request, timeout=None):
        raise HTTPError(request.full_url, 404, 'Not Found', {}, io.BytesIO(b'{"error": "agent_not_found"}'))

    monkeypatch.setattr(mcp_server, 'urlopen', not_found)
    result = mcp_server.set_agent_status('Ghost', 'idle')
    assert result['ok'] is False
    assert result['status_code'] == 404
    assert 'agent_not_found' in result['details']

    def offline(request, timeout=None):
        raise URLError('connection refused')

    monkeypatch.setattr(mcp_server, 'urlopen', offline)
    result = mcp_server.dashboard_agents()
    assert result == {
        'ok': False,
        'base_url': mcp_server.BASE_URL,
        'error': 'Connection error',
        'details': 'connection refused',
    }
