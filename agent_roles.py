"""Agent roster for the office dashboard.

The roster is the fixed set of agents the dashboard knows about, together with
their display metadata and initial status. It is loaded once at startup and
treated as read-only afterwards. A JSON file can replace the built-in roster
through ``OFFICE_DASHBOARD_ROSTER_FILE``.
"""

import json
import os

ROSTER_FILE = os.environ.get('OFFICE_DASHBOARD_ROSTER_FILE', '').strip()

LEAD_AGENT = 'Botthew'
DEFAULT_COLOR = '#00ff41'

DEFAULT_ROSTER = [
    {'name': 'Botthew', 'role': 'Lead Assistant', 'emoji': '🤖', 'color': '#00d9ff',
     'status': 'online', 'taskCount': 12, 'productivity': 85, 'keywords': []},
    {'name': 'DevBot', 'role': 'Lead Developer', 'emoji': '👨‍💻', 'color': '#00ff88',
     'status': 'online', 'taskCount': 5, 'productivity': 92,
     'keywords': ['dev', 'code', 'git', 'deploy', 'debug']},
    {'name': 'ResearchBot', 'role': 'Chief Investigator', 'emoji': '🔍', 'color': '#ffaa00',
     'status': 'online', 'taskCount': 3, 'productivity': 88,
     'keywords': ['research', 'search', 'web', 'fetch', 'docs']},
    {'name': 'WriterBot', 'role': 'Content Strategist', 'emoji': '✍️', 'color': '#ff6b9d',
     'status': 'online', 'taskCount': 7, 'productivity': 78,
     'keywords': ['write', 'doc', 'readme', 'content']},
    {'name': 'DesignBot', 'role': 'Creative Director', 'emoji': '🎨', 'color': '#a855f7',
     'status': 'online', 'taskCount': 8, 'productivity': 95,
     'keywords': ['image', 'design', 'visual', 'asset']},
    {'name': 'DebugBot', 'role': 'Systems Detective', 'emoji': '🕵️', 'color': '#ef4444',
     'status': 'online', 'taskCount': 4, 'productivity': 81,
     'keywords': ['debug', 'error', 'log', 'issue']},
    {'name': 'OpsBot', 'role': 'Operations Lead', 'emoji': '⚙️', 'color': '#f59e0b',
     'status': 'online', 'taskCount': 6, 'productivity': 87,
     'keywords': ['deploy', 'cron', 'config', 'build']},
    {'name': 'DataBot', 'role': 'Data Analyst', 'emoji': '📊', 'color': '#06b6d4',
     'status': 'online', 'taskCount': 2, 'productivity': 90,
     'keywords': ['data', 'query', 'analyze']},
    {'name': 'SecurityBot', 'role': 'Security Analyst', 'emoji': '🛡️', 'color': '#22c55e',
     'status': 'online', 'taskCount': 9, 'productivity': 93,
     'keywords': ['security', 'auth', 'secret', 'token']},
]


def normalize_role(entry):
    """Fill display defaults for one roster entry; return None if it has no name."""
    if not isinstance(entry, dict):
        return None
    name = str(entry.get('name') or '').strip()
    if not name:
        return None
    keywords = entry.get('keywords') if isinstance(entry.get('keywords'), list) else []
    return {
        'name': name,
        'role': entry.get('role') or 'Team Member',
        'emoji': entry.get('emoji') or '🤖',
        'color': entry.get('color') or DEFAULT_COLOR,
        'status': entry.get('status', 'idle'),
        'taskCount': entry.get('taskCount', 0),
        'productivity': entry.get('productivity', 0),
        'keywords': [str(k).lower() for k in keywords if str(k).strip()],
    }


def load_roster(path=None):
    """Return the roster as an ordered dict of name -> role entry.

    Falls back to the built-in roster when no file is configured or the file
    cannot be parsed into at least one valid entry.
    """
    path = ROSTER_FILE if path is None else path
    entries = DEFAULT_ROSTER
    if path:
        try:
            with open(path, 'r', encoding='utf-8') as fh:
                loaded = json.load(fh)
            if isinstance(loaded, dict):
                loaded = [dict(value, name=key) for key, value in loaded.items() if isinstance(value, dict)]
            if isinstance(loaded, list) and loaded:
                entries = loaded
        except Exception as e:
            print(f'[BOOT] Failed to load roster from {path}: {e}; using built-in roster')

    roster = {}
    for entry in entries:
        role = normalize_role(entry)
        if role and role['name'] not in roster:
            roster[role['name']] = role
    if not roster:
        roster = {r['name']: r for r in (normalize_role(e) for e in DEFAULT_ROSTER)}
    return roster


def display_metadata(roster, agent):
    """Return the display-only fields for an agent (empty for unknown agents)."""
    role = roster.get(agent)
    if not role:
        return {}
    return {
        'name': role['name'],
        'role': role['role'],
        'emoji': role['emoji'],
        'color': role['color'],
    }
