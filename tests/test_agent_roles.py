import json

from agent_roles import DEFAULT_ROSTER, display_metadata, load_roster


def test_default_roster_has_fixed_agents_in_order():
    roster = load_roster('')
    assert list(roster) == [entry['name'] for entry in DEFAULT_ROSTER]
    assert roster['OpsBot']['keywords'] == ['deploy', 'cron', 'config', 'build']


def test_roster_file_overrides_defaults(tmp_path):
    path = tmp_path / 'roster.json'
    path.write_text(json.dumps({
        'A': {'role': 'Alpha', 'status': 'busy', 'keywords': ['Alpha']},
        'B': {},
        'bad': 'nope',
    }), encoding='utf-8')

    roster = load_roster(str(path))

    assert list(roster) == ['A', 'B']
    assert roster['A']['keywords'] == ['alpha']
    assert roster['B']['role'] == 'Team Member'
    assert roster['B']['color'] == '#00ff41'


def test_unreadable_roster_falls_back_to_defaults(tmp_path):
    path = tmp_path / 'roster.json'
    path.write_text('{broken', encoding='utf-8')
    assert list(load_roster(str(path))) == [entry['name'] for entry in DEFAULT_ROSTER]
    assert list(load_roster(str(tmp_path / 'missing.json'))) == [entry['name'] for entry in DEFAULT_ROSTER]


def test_display_metadata_excludes_status_fields():
    roster = load_roster('')
    assert display_metadata(roster, 'DataBot') == {
        'name': 'DataBot',
        'role': 'Data Analyst',
        'emoji': '📊',
        'color': '#06b6d4',
    }
    assert display_metadata(roster, 'Ghost') == {}
