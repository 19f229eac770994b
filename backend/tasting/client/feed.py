"""Subscriber side of the live session feed.

Change events only say *that* something changed, so every event (and every
(re)connection, which may have missed some) triggers a full re-fetch of the
session. Ordering and duplicates therefore do not matter.
"""
import logging
from typing import Any, Callable, Dict, Optional

import socketio

from tasting.errors import TastingError
from tasting.feed import FEED_NAMESPACE

logger = logging.getLogger(__name__)


class FeedNamespace(socketio.ClientNamespace):
    def __init__(self, feed: 'SessionFeed', namespace: str = FEED_NAMESPACE):
        super().__init__(namespace)
        self.feed = feed

    def on_connect(self):
        # Also runs after an automatic reconnect, which is when missed events are recovered
        self.emit('subscribe', {'session_id': self.feed.session_id})
        self.feed.refresh()

    def on_disconnect(self, *args):
        logger.info(f"[feed] disconnected from session={self.feed.session_id}")

    def on_subscribed(self, data):
        logger.info(f"[feed] subscribed to session={data.get('session_id')}")

    def on_change(self, data):
        if (data or {}).get('session_id') != self.feed.session_id:
            return
        self.feed.refresh()

    def on_error(self, data):
        logger.warning(f"[feed] server error: {data}")


class SessionFeed:
    """Owned subscription to one session's changes.

    ``fetch`` loads the current view of the session (for example
    ``lambda: client.host_view(session_id)``) and ``on_update`` receives
    each result. Use as a context manager, or call :meth:`open` and
    :meth:`close` explicitly.
    """

    def __init__(self, url: str, session_id: str, fetch: Callable[[], Any],
                 on_update: Callable[[Any], None], client: Optional[socketio.Client] = None,
                 headers: Optional[Dict[str, str]] = None):
        self.url = url
        self.session_id = session_id
        self.fetch = fetch
        self.on_update = on_update
        self.headers = headers or {}
        self.client = client or socketio.Client(reconnection=True)
        self.namespace = FeedNamespace(self)
        self.client.register_namespace(self.namespace)
        self.is_open = False

    def refresh(self) -> bool:
        try:
            snapshot = self.fetch()
        except TastingError as exc:
            # The next change event or reconnect retries
            logger.error(f"[feed] re-fetch failed for session={self.session_id}: {exc.message}")
            return False
        self.on_update(snapshot)
        return True

    def open(self) -> 'SessionFeed':
        if not self.is_open:
            self.client.connect(self.url, headers=self.headers, namespaces=[FEED_NAMESPACE])
            self.is_open = True
        return self

    def close(self) -> None:
        if not self.is_open:
            return
        self.is_open = False
        if self.client.connected:
            self.client.emit('unsubscribe', {'session_id': self.session_id}, namespace=FEED_NAMESPACE)
        self.client.disconnect()

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
