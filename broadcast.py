"""Live-update fan-out for the office dashboard.

The hub keeps every connected client in an indexed collection keyed by a
handle id and writes each published event to all of them. Delivery is
best-effort: a failing subscriber is logged and skipped, and it stays
registered until its transport reports the disconnect.
"""

import itertools
import json
import queue
import threading


def format_sse(event):
    """Encode one event as a Server-Sent Events data frame."""
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


class QueueSubscriber:
    """Subscriber backed by a queue, drained by a streaming HTTP response."""

    kind = 'sse'

    def __init__(self):
        self._queue = queue.Queue()

    def send(self, event):
        self._queue.put(format_sse(event))

    def pending(self):
        return self._queue.qsize()

    def stream(self, on_close=None):
        """Yield SSE frames until the consumer closes the generator."""
        try:
            while True:
                yield self._queue.get()
        finally:
            if on_close is not None:
                on_close()


class CallbackSubscriber:
    """Subscriber that hands every event to a callable (used for Socket.IO)."""

    kind = 'callback'

    def __init__(self, callback, label=''):
        self._callback = callback
        self.label = label

    def send(self, event):
        self._callback(event)


class BroadcastHub:
    """Registry of live subscribers plus synchronous fan-out.

    ``snapshot`` is a zero-argument callable returning the full agent state;
    it is used for the initial ``state`` event sent on subscribe. ``lock``
    is shared with the state store and task log so that a mutation and its
    publish are observed by subscribers in one linear order.
    """

    def __init__(self, snapshot, lock=None):
        self._snapshot = snapshot
        self._lock = lock if lock is not None else threading.RLock()
        self._subscribers = {}
        self._ids = itertools.count(1)

    def __len__(self):
        with self._lock:
            return len(self._subscribers)

    def __contains__(self, handle):
        with self._lock:
            return handle in self._subscribers

    def subscribe(self, subscriber):
        """Register a subscriber and send it the current state before returning."""
        with self._lock:
            handle = next(self._ids)
            self._subscribers[handle] = subscriber
            self._deliver(handle, subscriber, {'type': 'state', 'agents': self._snapshot()})
            total = len(self._subscribers)
        print(f'[HUB] Subscriber {handle} ({subscriber.kind}) connected, {total} live')
        return handle

    def unsubscribe(self, handle):
        """Remove a subscriber; unknown or already removed handles are ignored."""
        with self._lock:
            removed = self._subscribers.pop(handle, None)
            total = len(self._subscribers)
        if removed is not None:
            print(f'[HUB] Subscriber {handle} disconnected, {total} live')
        return removed is not None

    def publish(self, event):
        """Write an event to every current subscriber; return the delivered count."""
        delivered = 0
        with self._lock:
            for handle, subscriber in list(self._subscribers.items()):
                if self._deliver(handle, subscriber, event):
                    delivered += 1
        return delivered

    def _deliver(self, handle, subscriber, event):
        try:
            subscriber.send(event)
            return True
        except Exception as e:
            print(f"[HUB] Failed to deliver {event.get('type')} to subscriber {handle}: {e}")
            return False
