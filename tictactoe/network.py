import json
import logging
import socket
import threading

from .remote_store import RemoteStore

logger = logging.getLogger(__name__)

RECV_SIZE = 4096


def encode_message(message):
    # one json object per line
    return (json.dumps(message) + "\n").encode('utf-8')


def decode_lines(buffer):
    """
    split complete lines off a byte buffer
    returns (messages, leftover); undecodable lines are skipped
    """
    messages = []
    *lines, rest = buffer.split(b"\n")
    for line in lines:
        if not line.strip():
            continue
        try:
            msg = json.loads(line.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.warning("skipping malformed line from store: %r", line[:80])
            continue
        if isinstance(msg, dict):
            messages.append(msg)
    return messages, rest


class NetworkStore(RemoteStore):
    """
    RemoteStore client for tictactoe.store_server
    connect and recv run on a daemon thread; qt queues its signals onto the gui thread
    once the link fails it stays down, every later call reports the failure
    """

    def __init__(self, host, port, timeout=10.0, parent=None):
        super().__init__(parent)
        self.host = host; self.port = port
        self.timeout = timeout
        self.socket = None
        self._running = False       # recv thread control flag
        self._failed = None         # reason the link went down, latched
        self._thread = None
        self._send_lock = threading.Lock()
        self._pending = []          # encoded writes made before the connect finished
        self._subscriptions = set()

    @property
    def is_connected(self):
        return self.socket is not None and self._running

    def open(self):
        """
        start connecting in the background, False once the link has failed
        """
        with self._send_lock:
            if self._failed is not None:
                return False
            if self._thread is None:
                self._running = True
                self._thread = threading.Thread(target=self._run, daemon=True)
                self._thread.start()
        return True

    def set_record(self, session_id, record):
        self._send({"op": "set", "session": session_id, "record": record}, session_id)

    def update(self, session_id, fields):
        self._send({"op": "update", "session": session_id, "fields": fields}, session_id)

    def subscribe(self, session_id):
        with self._send_lock:
            self._subscriptions.add(session_id)
        self._send({"op": "subscribe", "session": session_id}, session_id)

    def unsubscribe(self, session_id):
        with self._send_lock:
            self._subscriptions.discard(session_id)
            live = self._thread is not None and self._failed is None
        if live:
            self._send({"op": "unsubscribe", "session": session_id}, session_id)

    def _send(self, message, session_id):
        """
        send or queue one message, surfaces failures as subscription_failed
        """
        self.open()
        data = encode_message(message)
        error = None
        with self._send_lock:
            if self._failed is None:
                if self.socket is None:
                    self._pending.append(data)
                    return True
                try:
                    self.socket.sendall(data)
                    return True
                except OSError as e:
                    error = f"send error: {e}"
            reason = self._failed
        if error:
            self._close(error, session_id)
        else:
            self.subscription_failed.emit(session_id, reason)
        return False

    def _run(self):
        # connect, flush queued writes, then hand over to the recv loop
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
            sock.settimeout(None)
        except socket.timeout:
            self._close(f"connection timed out to {self.host}:{self.port}")
            return
        except OSError as e:
            self._close(f"connection error: {e}")
            return

        error = None
        with self._send_lock:
            if not self._running:
                # closed while connecting
                sock.close()
                return
            self.socket = sock
            pending, self._pending = self._pending, []
            try:
                for data in pending:
                    sock.sendall(data)
            except OSError as e:
                error = f"send error: {e}"
        if error:
            self._close(error)
            return
        logger.info("connected to store at %s:%d", self.host, self.port)
        self._recv_loop(sock)

    def _recv_loop(self, sock):
        # main loop: recv lines, emit signals
        buffer = b""
        while self._running:
            try:
                data = sock.recv(RECV_SIZE)
            except OSError as e:
                if self._running:
                    self._close(f"socket error: {e}")
                break
            if not data:
                if self._running:
                    self._close("store closed the connection")
                break
            buffer += data
            messages, buffer = decode_lines(buffer)
            for msg in messages:
                self._dispatch(msg)

    def _dispatch(self, msg):
        kind = msg.get("type")
        session_id = msg.get("session")
        if not isinstance(session_id, str):
            logger.warning("store message without session: %r", msg)
            return
        if kind == "record":
            self.record_changed.emit(session_id, msg.get("record"))
        elif kind == "error":
            self.subscription_failed.emit(session_id, str(msg.get("message", "store error")))
        else:
            logger.warning("unknown store message type: %r", kind)

    def _close(self, reason, session_id=None):
        """
        tear down after an error and tell every subscriber, only the first reason counts
        """
        with self._send_lock:
            if self._failed is not None:
                return
            self._failed = reason
            self._running = False
            sock, self.socket = self.socket, None
            self._pending.clear()
            failed = set(self._subscriptions)
        if session_id is not None:
            failed.add(session_id)
        if sock:
            try:
                sock.close()
            except OSError:
                pass
        logger.warning("store %s:%d unavailable: %s", self.host, self.port, reason)
        for sid in failed:
            self.subscription_failed.emit(sid, reason)

    def close(self):
        # explicit shutdown, no failure signals
        with self._send_lock:
            if self._failed is not None:
                return
            self._failed = "store closed"
            self._running = False
            sock, self.socket = self.socket, None
            self._pending.clear()
        if sock:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            sock.close()
