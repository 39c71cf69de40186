"""Office dashboard backend.

Serves the in-memory agent status board over a small REST API, streams live
updates to browsers over Server-Sent Events and Socket.IO, and accepts bulk
state pushes from the external sync agent.
"""

from flask import Flask, Response, render_template, request, stream_with_context
from flask_socketio import SocketIO
import os

from agent_roles import display_metadata, load_roster
from broadcast import CallbackSubscriber, QueueSubscriber
from office_state import InvalidPayload, Office, OfficeError

app = Flask(__name__)
socketio = SocketIO(app, cors_allowed_origins="*")


def env_flag(name, default=False):
    """Read a boolean flag from the environment ('1', 'true', 'yes', 'on')."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {'1', 'true', 'yes', 'on'}


ALLOW_TASK_ASSIGNMENT = env_flag('OFFICE_DASHBOARD_ALLOW_TASK_ASSIGNMENT')
HOST = os.environ.get('OFFICE_DASHBOARD_HOST', '0.0.0.0')
try:
    PORT = int(os.environ.get('OFFICE_DASHBOARD_PORT', os.environ.get('PORT', '3000')))
except Exception:
    PORT = 3000

office = Office(roster=load_roster(), allow_task_assignment=ALLOW_TASK_ASSIGNMENT)
# Socket.IO session id -> hub handle.
socket_handles = {}


@app.errorhandler(OfficeError)
def handle_office_error(error):
    """Render rejected operations as JSON with the error's HTTP status."""
    return error.to_dict(), error.status_code


def read_json_body():
    """Return the decoded JSON body, or None when it is missing or malformed."""
    return request.get_json(silent=True)


@app.route('/')
def index():
    """Serve the dashboard page."""
    return render_template('index.html')


@app.route('/capabilities')
def capabilities():
    """Expose runtime switches and live counters."""
    return {
        'task_assignment': office.gateway.allow_task_assignment,
        'known_agents': len(office.store.known_agents()),
        'subscribers': len(office.hub),
        'tasks': len(office.tasks),
    }


@app.route('/api/agents')
def agents():
    """Return the agent snapshot enriched with roster display metadata."""
    snapshot = office.store.get()
    return {
        name: {**display_metadata(office.roster, name), **record}
        for name, record in snapshot.items()
    }


@app.route('/api/update-state', methods=['POST'])
def update_state():
    """Bulk ingress used by the sync agent."""
    payload = read_json_body()
    if payload is None:
        raise InvalidPayload('Request body must be JSON')
    office.gateway.apply_bulk_update(payload)
    return {'success': True}


@app.route('/api/agent-status', methods=['POST'])
def agent_status():
    """Set a single agent's status."""
    body = read_json_body()
    if not isinstance(body, dict):
        raise InvalidPayload('Missing agent or status')
    office.gateway.set_single_status(body.get('agent'), body.get('status'))
    return {'success': True}


@app.route('/api/assign-task', methods=['POST'])
def assign_task():
    """Assign a task to an agent when the capability is enabled."""
    body = read_json_body()
    if not isinstance(body, dict):
        body = {}
    task = office.gateway.assign_task(body.get('agent'), body.get('task'))
    return {'success': True, 'task': task.to_dict()}


@app.route('/api/task-history')
def task_history():
    """Return every task ever assigned, oldest first."""
    return [task.to_dict() for task in office.tasks.history()]


@app.route('/api/task-queue')
def task_queue():
    """Return the task queue (never pruned)."""
    return [task.to_dict() for task in office.tasks.queue()]


@app.route('/api/events')
def events():
    """Stream live dashboard events as Server-Sent Events."""
    hub = office.hub
    subscriber = QueueSubscriber()
    handle = hub.subscribe(subscriber)
    frames = subscriber.stream(on_close=lambda: hub.unsubscribe(handle))
    response = Response(stream_with_context(frames), mimetype='text/event-stream')
    # The generator body never runs if the client leaves before the first frame.
    response.call_on_close(lambda: hub.unsubscribe(handle))
    response.headers['Cache-Control'] = 'no-cache'
    response.headers['X-Accel-Buffering'] = 'no'
    return response


def emit_to_socket(sid):
    """Build a callback that forwards hub events to one Socket.IO client."""
    def emit(event):
        socketio.emit(event['type'], event, room=sid)
    return emit


@socketio.on('connect')
def handle_connect():
    """Subscribe a new websocket client; it immediately receives the full state."""
    sid = request.sid
    socket_handles[sid] = office.hub.subscribe(CallbackSubscriber(emit_to_socket(sid), label=sid))


@socketio.on('disconnect')
def handle_disconnect(*_args):
    """Drop the hub subscription of a disconnected websocket client."""
    handle = socket_handles.pop(request.sid, None)
    if handle is not None:
        office.hub.unsubscribe(handle)


if __name__ == '__main__':  # pragma: no cover
    print(f'[BOOT] Office dashboard on {HOST}:{PORT}, task assignment '
          f'{"enabled" if ALLOW_TASK_ASSIGNMENT else "disabled"}')
    socketio.run(app, host=HOST, port=PORT, allow_unsafe_werkzeug=True)
