import copy
import logging
import uuid
from collections import deque

from PySide6.QtCore import QObject, Signal

logger = logging.getLogger(__name__)


class RemoteStore(QObject):
    """
    keyed session records shared by both peers
    writes upsert fields, subscribers get the full record on every change
    """
    record_changed = Signal(str, object)       # session id, full record
    subscription_failed = Signal(str, str)     # session id, reason

    def new_session_id(self):
        # short code players can type in
        return uuid.uuid4().hex[:8]

    def set_record(self, session_id, record):
        raise NotImplementedError

    def update(self, session_id, fields):
        raise NotImplementedError

    def subscribe(self, session_id):
        raise NotImplementedError

    def unsubscribe(self, session_id):
        raise NotImplementedError


class MemoryStore(RemoteStore):
    """
    in-process store, notifies synchronously
    one instance shared by two adapters lets both peers run in one process
    """
    def __init__(self, parent=None):
        super().__init__(parent)
        self.records = {}           # session id -> record dict
        self._subscribed = {}       # session id -> subscriber count
        self._outbox = deque()      # pending (session id, record) notifications
        self._delivering = False

    def set_record(self, session_id, record):
        self.records[session_id] = copy.deepcopy(record)
        self._notify(session_id)

    def update(self, session_id, fields):
        # one write, one notification
        self.records.setdefault(session_id, {}).update(copy.deepcopy(fields))
        self._notify(session_id)

    def subscribe(self, session_id):
        self._subscribed[session_id] = self._subscribed.get(session_id, 0) + 1
        if session_id in self.records:
            self._deliver(session_id)

    def unsubscribe(self, session_id):
        count = self._subscribed.get(session_id, 0) - 1
        if count > 0:
            self._subscribed[session_id] = count
        else:
            self._subscribed.pop(session_id, None)

    def fail(self, session_id, reason):
        # simulate a dropped subscription
        logger.warning("subscription to %s failed: %s", session_id, reason)
        self.subscription_failed.emit(session_id, reason)

    def _notify(self, session_id):
        if session_id in self._subscribed:
            self._deliver(session_id)

    def _deliver(self, session_id):
        """
        emit in write order; writes made by a listener are queued, not nested
        """
        self._outbox.append((session_id, copy.deepcopy(self.records[session_id])))
        if self._delivering:
            return
        self._delivering = True
        try:
            while self._outbox:
                sid, record = self._outbox.popleft()
                self.record_changed.emit(sid, record)
        finally:
            self._delivering = False
