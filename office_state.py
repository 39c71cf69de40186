"""In-memory office state: agent status store, task log and update gateway.

All mutable state lives in one ``Office`` object created at startup. The
store, the task log and the broadcast hub share one re-entrant lock, and
every mutation publishes its event while still holding it, so a snapshot is
never observed half-applied and subscribers see events in mutation order.
"""

import math
import threading
import time
from dataclasses import asdict, dataclass

from agent_roles import load_roster
from broadcast import BroadcastHub

AGENT_STATUSES = ('online', 'offline', 'idle', 'busy')
MAX_TASK_COUNT = 1000
MAX_PRODUCTIVITY = 100


class OfficeError(Exception):
    """Base error for rejected dashboard operations."""

    status_code = 400
    code = 'office_error'

    def to_dict(self):
        return {'error': self.code, 'message': str(self)}


class InvalidPayload(OfficeError):
    code = 'invalid_payload'


class UnknownAgent(OfficeError):
    status_code = 404
    code = 'agent_not_found'


class InvalidStatus(OfficeError):
    code = 'invalid_status'


class InvalidTask(OfficeError):
    code = 'invalid_task'


class Forbidden(OfficeError):
    status_code = 403
    code = 'forbidden'


@dataclass
class AgentStatus:
    status: str
    taskCount: int
    productivity: int


@dataclass(frozen=True)
class TaskRecord:
    id: int
    agent: str
    description: str
    timestamp: str
    status: str = 'assigned'

    def to_dict(self):
        return asdict(self)


def utc_now_iso():
    """Return current UTC time as ISO-8601 string."""
    return time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime())


def normalize_status(value):
    """Return the lower-cased status if it is in the closed set, else None."""
    if not isinstance(value, str):
        return None
    status = value.strip().lower()
    return status if status in AGENT_STATUSES else None


def coerce_bounded_int(value, upper):
    """Return value as an int in [0, upper], or None when it is not acceptable."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if value < 0 or value > upper:
        return None
    return int(round(value)) if isinstance(value, float) else value


def validate_fields(partial):
    """Split a partial agent update into accepted fields and dropped field names."""
    accepted = {}
    dropped = []
    if 'status' in partial:
        status = normalize_status(partial['status'])
        if status is None:
            dropped.append('status')
        else:
            accepted['status'] = status

    count_key = 'taskCount' if 'taskCount' in partial else ('tasks' if 'tasks' in partial else None)
    if count_key:
        count = coerce_bounded_int(partial[count_key], MAX_TASK_COUNT)
        if count is None:
            dropped.append(count_key)
        else:
            accepted['taskCount'] = count

    if 'productivity' in partial:
        productivity = coerce_bounded_int(partial['productivity'], MAX_PRODUCTIVITY)
        if productivity is None:
            dropped.append('productivity')
        else:
            accepted['productivity'] = productivity
    return accepted, dropped


@dataclass
class MergeResult:
    changed: dict
    unknown_agents: list
    dropped_fields: dict

    @property
    def has_changes(self):
        return bool(self.changed)


class StateStore:
    """Mapping of known agent id to its current status record."""

    def __init__(self, initial, hub=None, lock=None):
        self._lock = lock if lock is not None else threading.RLock()
        self._hub = hub
        self._agents = {}
        for name, record in initial.items():
            accepted, _ = validate_fields(record)
            self._agents[name] = AgentStatus(
                status=accepted.get('status', 'idle'),
                taskCount=accepted.get('taskCount', 0),
                productivity=accepted.get('productivity', 0),
            )

    def attach_hub(self, hub):
        self._hub = hub

    def is_known(self, agent):
        return isinstance(agent, str) and agent in self._agents

    def known_agents(self):
        return list(self._agents)

    def get(self):
        """Return a full snapshot of every agent record as plain dicts."""
        with self._lock:
            return {name: asdict(record) for name, record in self._agents.items()}

    def merge(self, updates):
        """Shallow-merge partial records into known agents.

        Unknown agents and invalid fields are skipped individually; the merge
        itself never fails. One ``state`` event is published when at least one
        field actually changed.
        """
        changed = {}
        unknown = []
        dropped = {}
        with self._lock:
            for agent, partial in updates.items():
                if not self.is_known(agent):
                    unknown.append(agent)
                    continue
                if not isinstance(partial, dict):
                    dropped[agent] = ['*']
                    continue
                accepted, rejected = validate_fields(partial)
                if rejected:
                    dropped[agent] = rejected
                record = self._agents[agent]
                diff = {k: v for k, v in accepted.items() if getattr(record, k) != v}
                for key, value in diff.items():
                    setattr(record, key, value)
                if diff:
                    changed[agent] = diff

            if changed and self._hub is not None:
                self._hub.publish({'type': 'state', 'agents': self.get()})

        if unknown:
            print(f'[STATE] Ignored unknown agents: {", ".join(map(str, unknown))}')
        if dropped:
            print(f'[STATE] Dropped invalid fields: {dropped}')
        return MergeResult(changed=changed, unknown_agents=unknown, dropped_fields=dropped)

    def set_status(self, agent, status):
        with self._lock:
            self._agents[agent].status = status

    def increment_tasks(self, agent):
        with self._lock:
            self._agents[agent].taskCount += 1
            return self._agents[agent].taskCount


class TaskLog:
    """Append-only task log with queue and history views.

    Both views receive every appended task and are never pruned; there is no
    completion protocol that would move a task out of the queue.
    """

    def __init__(self, store, hub=None, lock=None, clock=None):
        self._store = store
        self._hub = hub
        self._lock = lock if lock is not None else threading.RLock()
        self._clock = clock or (lambda: int(time.time() * 1000))
        self._history = []
        self._queue = []
        self._last_id = 0

    def attach_hub(self, hub):
        self._hub = hub

    def __len__(self):
        with self._lock:
            return len(self._history)

    def _next_id(self):
        task_id = max(int(self._clock()), self._last_id + 1)
        self._last_id = task_id
        return task_id

    def append(self, agent, description):
        """Record a new assigned task, bump the agent's task count and publish it."""
        if not self._store.is_known(agent):
            raise InvalidTask(f'Unknown agent: {agent}')
        if not isinstance(description, str) or not description.strip():
            raise InvalidTask('Task description is required')

        with self._lock:
            task = TaskRecord(
                id=self._next_id(),
                agent=agent,
                description=description.strip(),
                timestamp=utc_now_iso(),
            )
            self._history.append(task)
            self._queue.append(task)
            self._store.increment_tasks(agent)
            if self._hub is not None:
                self._hub.publish({
                    'type': 'task_assigned',
                    'task': task.to_dict(),
                    'agents': self._store.get(),
                })
        print(f'[TASKS] Task {task.id} assigned to {agent}')
        return task

    def history(self):
        with self._lock:
            return list(self._history)

    def queue(self):
        with self._lock:
            return list(self._queue)


class UpdateGateway:
    """Ingress for the sync process and the dashboard's write endpoints."""

    def __init__(self, store, tasks, hub, allow_task_assignment=False, lock=None):
        self.store = store
        self.tasks = tasks
        self.hub = hub
        self.allow_task_assignment = bool(allow_task_assignment)
        self._lock = lock if lock is not None else threading.RLock()

    def apply_bulk_update(self, payload):
        """Merge a mapping of agent -> partial status; only the shape can fail."""
        if not isinstance(payload, dict):
            raise InvalidPayload('Bulk update must be a JSON object keyed by agent')
        return self.store.merge(payload)

    def set_single_status(self, agent, status):
        """Set one agent's status and publish a ``status_update`` event."""
        if not agent or not status:
            raise InvalidPayload('Missing agent or status')
        if not self.store.is_known(agent):
            raise UnknownAgent(f'Agent not found: {agent}')
        normalized = normalize_status(status)
        if normalized is None:
            raise InvalidStatus(f"Status must be one of {', '.join(AGENT_STATUSES)}")

        with self._lock:
            self.store.set_status(agent, normalized)
            self.hub.publish({
                'type': 'status_update',
                'agent': agent,
                'status': normalized,
                'agents': self.store.get(),
            })
        return normalized

    def assign_task(self, agent, description):
        """Create a task when assignment is enabled; otherwise always Forbidden."""
        if not self.allow_task_assignment:
            raise Forbidden('Task assignment is disabled on this dashboard')
        if not agent or not isinstance(description, str) or not description.strip():
            raise InvalidTask('Missing agent or task')
        if not self.store.is_known(agent):
            raise UnknownAgent(f'Agent not found: {agent}')
        return self.tasks.append(agent, description)


class Office:
    """Process-wide dashboard context: roster, store, task log, hub and gateway."""

    def __init__(self, roster=None, allow_task_assignment=False):
        self.roster = roster if roster is not None else load_roster()
        self.lock = threading.RLock()
        self.store = StateStore(self.roster, lock=self.lock)
        self.hub = BroadcastHub(self.store.get, lock=self.lock)
        self.store.attach_hub(self.hub)
        self.tasks = TaskLog(self.store, hub=self.hub, lock=self.lock)
        self.gateway = UpdateGateway(
            self.store,
            self.tasks,
            self.hub,
            allow_task_assignment=allow_task_assignment,
            lock=self.lock,
        )
