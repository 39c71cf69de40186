#!/usr/bin/env python3
"""
Standalone live-event reader for the office dashboard.
Tails /api/events and prints one line per event; handy for checking the
stream without a browser.
"""
import json
import os
import sys
from urllib.request import Request, urlopen

DASHBOARD_URL = os.environ.get('DASHBOARD_URL', 'http://127.0.0.1:3000').rstrip('/')


def parse_sse_lines(lines):
    """Yield decoded JSON events from an iterable of SSE text lines."""
    data = []
    for raw in lines:
        line = raw.decode('utf-8') if isinstance(raw, bytes) else raw
        line = line.rstrip('\r\n')
        if not line:
            if data:
                try:
                    yield json.loads('\n'.join(data))
                except json.JSONDecodeError:
                    print(f'[READER] Skipping undecodable frame: {data!r}', file=sys.stderr)
                data = []
            continue
        if line.startswith(':'):
            continue
        if line.startswith('data:'):
            data.append(line[5:].lstrip(' '))


def describe_event(event):
    """One-line human summary of a dashboard event."""
    kind = event.get('type', 'unknown')
    agents = event.get('agents') or {}
    if kind == 'task_assigned':
        task = event.get('task') or {}
        return f"task_assigned #{task.get('id')} -> {task.get('agent')}: {task.get('description')}"
    if kind == 'status_update':
        return f"status_update {event.get('agent')} -> {event.get('status')}"
    busy = sorted(name for name, record in agents.items() if record.get('status') == 'busy')
    return f"{kind} {len(agents)} agents" + (f" (busy: {', '.join(busy)})" if busy else '')


def tail_events(base_url):  # pragma: no cover
    request = Request(url=f'{base_url}/api/events', headers={'Accept': 'text/event-stream'})
    with urlopen(request) as response:
        for event in parse_sse_lines(response):
            print(f'[READER] {describe_event(event)}', flush=True)


if __name__ == '__main__':  # pragma: no cover
    print(f'[READER] Tailing {DASHBOARD_URL}/api/events (pid={os.getpid()})')
    try:
        tail_events(DASHBOARD_URL)
    except KeyboardInterrupt:
        print('[READER] Interrupted, exiting')
    except Exception as e:
        print(f'[READER] Exception: {e}', file=sys.stderr)
        raise
