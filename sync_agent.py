#!/usr/bin/env python3
"""Office state sync agent.

Scans recently modified session transcripts, guesses which roster agent each
one belongs to from keywords, and pushes a bulk update to the dashboard's
``/api/update-state`` endpoint. Run it from cron with ``--once``, or
let it poll every ``OFFICE_SYNC_INTERVAL_SEC`` seconds (``--interval`` overrides).
"""

import argparse
import json
import os
import sys
import time
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from agent_roles import LEAD_AGENT, load_roster

DASHBOARD_URL = os.environ.get('DASHBOARD_URL', 'http://127.0.0.1:3000').rstrip('/')
WORKSPACE = os.path.expanduser(os.environ.get('OFFICE_SYNC_WORKSPACE', '~/.openclaw/workspace'))
try:
    ACTIVE_WINDOW_MIN = float(os.environ.get('OFFICE_SYNC_ACTIVE_WINDOW_MIN', '30'))
except Exception:
    ACTIVE_WINDOW_MIN = 30.0
try:
    SYNC_INTERVAL_SEC = float(os.environ.get('OFFICE_SYNC_INTERVAL_SEC', '30'))
except Exception:
    SYNC_INTERVAL_SEC = 30.0
try:
    REQUEST_TIMEOUT_SEC = float(os.environ.get('OFFICE_HTTP_TIMEOUT_SEC', '10'))
except Exception:
    REQUEST_TIMEOUT_SEC = 10.0


def infer_agent(filename, content, roster):
    """Return the first roster agent whose keywords appear in filename or content."""
    text = f'{filename} {content}'.lower()
    for name, role in roster.items():
        if any(keyword in text for keyword in role.get('keywords', [])):
            return name
    return LEAD_AGENT if LEAD_AGENT in roster else next(iter(roster), None)


def read_last_entry(path):
    """Parse the last non-empty line of a JSONL file; None when unreadable."""
    try:
        with open(path, 'r', encoding='utf-8') as fh:
            lines = [line for line in fh.read().splitlines() if line.strip()]
        if not lines:
            return None
        return json.loads(lines[-1])
    except Exception:
        return None


def scan_sessions(workspace, roster, now=None, window_min=None):
    """Group recently active transcript files by inferred agent."""
    now = time.time() if now is None else now
    window_min = ACTIVE_WINDOW_MIN if window_min is None else window_min
    cutoff = now - window_min * 60
    sessions = {}
    try:
        names = sorted(os.listdir(workspace))
    except Exception as e:
        print(f'[SYNC] Cannot read workspace {workspace}: {e}', file=sys.stderr)
        return sessions

    for name in names:
        if not name.endswith('.jsonl'):
            continue
        path = os.path.join(workspace, name)
        try:
            if os.path.getmtime(path) < cutoff:
                continue
        except OSError:
            continue
        entry = read_last_entry(path)
        if entry is None:
            continue
        agent = infer_agent(name, json.dumps(entry, ensure_ascii=False), roster)
        if agent is None:
            continue
        session = sessions.setdefault(agent, {'messages': 0, 'tokens': 0, 'files': []})
        session['messages'] += 1
        tokens = entry.get('tokens') if isinstance(entry, dict) else None
        if isinstance(tokens, (int, float)) and not isinstance(tokens, bool):
            session['tokens'] += int(tokens)
        session['files'].append(name)
    return sessions


def estimate_productivity(session):
    """Activity-based productivity score in [0, 100]."""
    return min(100, 60 + session['messages'] * 2 + session['tokens'] // 100)


def build_state(sessions, roster):
    """Build the bulk update payload covering every roster agent.

    Idle agents carry no productivity so the dashboard keeps its last value.
    """
    state = {}
    for name in roster:
        session = sessions.get(name)
        if session and session['messages'] > 0:
            state[name] = {
                'status': 'online',
                'taskCount': session['messages'],
                'productivity': estimate_productivity(session),
            }
        else:
            state[name] = {'status': 'idle'}
    return state


def post_state(base_url, state, timeout=None):
    """POST a bulk update; return True when the dashboard acknowledged it."""
    body = json.dumps(state).encode('utf-8')
    request = Request(
        url=f'{base_url.rstrip("/")}/api/update-state',
        data=body,
        method='POST',
        headers={'Content-Type': 'application/json'},
    )
    try:
        with urlopen(request, timeout=timeout or REQUEST_TIMEOUT_SEC) as response:
            payload = json.loads(response.read().decode('utf-8') or '{}')
            return int(response.status) == 200 and payload.get('success') is True
    except HTTPError as exc:
        print(f'[SYNC] Dashboard rejected update: HTTP {exc.code}', file=sys.stderr)
    except URLError as exc:
        print(f'[SYNC] Dashboard unreachable: {exc.reason}', file=sys.stderr)
    except json.JSONDecodeError as exc:
        print(f'[SYNC] Invalid dashboard response: {exc}', file=sys.stderr)
    return False


def sync_once(workspace, base_url, roster, dry_run=False):
    """Run one scan-and-push cycle."""
    print(f'[SYNC] Syncing office state at {time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())}')
    sessions = scan_sessions(workspace, roster)
    print(f'[SYNC] Found {len(sessions)} active agents')
    state = build_state(sessions, roster)
    if dry_run:
        print(json.dumps(state, indent=2, ensure_ascii=False))
        return True
    ok = post_state(base_url, state)
    print(f'[SYNC] {"Dashboard updated" if ok else "Dashboard update failed"}')
    return ok


def main(argv=None):
    parser = argparse.ArgumentParser(description='Push agent activity to the office dashboard')
    parser.add_argument('--url', default=DASHBOARD_URL, help='dashboard base URL')
    parser.add_argument('--workspace', default=WORKSPACE, help='directory holding *.jsonl transcripts')
    parser.add_argument('--once', action='store_true', help='run a single sync and exit (cron mode)')
    parser.add_argument('--interval', type=float, default=None,
                        help='seconds between syncs (default: OFFICE_SYNC_INTERVAL_SEC; 0 runs once)')
    parser.add_argument('--dry-run', action='store_true', help='print the payload instead of posting it')
    args = parser.parse_args(argv)

    roster = load_roster()
    interval = SYNC_INTERVAL_SEC if args.interval is None else args.interval
    if args.once or interval <= 0:
        return 0 if sync_once(args.workspace, args.url, roster, dry_run=args.dry_run) else 1

    print(f'[SYNC] Polling every {max(1.0, interval):g}s')
    while True:
        try:
            sync_once(args.workspace, args.url, roster, dry_run=args.dry_run)
        except Exception as e:
            print(f'[SYNC] Sync error: {e}', file=sys.stderr)
        time.sleep(max(1.0, interval))


if __name__ == '__main__':  # pragma: no cover
    sys.exit(main())
