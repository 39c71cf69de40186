import pytest

import app as dashboard_app
from agent_roles import load_roster
from office_state import Office


class RecordingSubscriber:
    kind = 'test'

    def __init__(self):
        self.events = []

    def send(self, event):
        self.events.append(event)


class BrokenSubscriber:
    kind = 'test'

    def __init__(self):
        self.attempts = 0

    def send(self, event):
        self.attempts += 1
        raise BrokenPipeError('client went away')


@pytest.fixture
def small_office():
    roster = {
        'A': {'status': 'online', 'taskCount': 1, 'productivity': 70},
        'B': {'status': 'idle', 'taskCount': 0, 'productivity': 40},
    }
    return Office(roster=roster)


@pytest.fixture
def office(monkeypatch):
    fresh = Office(roster=load_roster(''), allow_task_assignment=False)
    monkeypatch.setattr(dashboard_app, 'office', fresh)
    return fresh


@pytest.fixture
def client(office):
    return dashboard_app.app.test_client()
