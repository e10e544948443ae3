#!/usr/bin/env python3
"""
Realtime session store for online games.

Keeps one record per session in memory. Clients send newline-delimited
JSON ops (set, update, subscribe, unsubscribe); every change is broadcast
as the full record to all subscribers of that session.
"""

import argparse
import asyncio
import copy
import json
import logging

logger = logging.getLogger(__name__)

HOST = '0.0.0.0'
PORT = 9999


async def send_json(writer, data):
    """async json line send, a dead peer is dropped quietly"""
    if writer.is_closing():
        return
    try:
        writer.write((json.dumps(data) + "\n").encode('utf-8'))
        await writer.drain()
    except (ConnectionError, OSError) as e:
        logger.debug("send to %s failed: %s", writer.get_extra_info('peername'), e)


class SessionStore:
    """
    session records plus who listens to them
    """
    def __init__(self):
        self.records = {}        # {session_id: record}
        self.subscribers = {}    # {session_id: set of writers}

    async def broadcast(self, session_id):
        record = self.records.get(session_id)
        if record is None:
            return
        msg = {"type": "record", "session": session_id, "record": record}
        for writer in list(self.subscribers.get(session_id, ())):
            await send_json(writer, msg)

    async def handle(self, writer, data):
        """apply one client op"""
        op = data.get("op")
        session_id = data.get("session")
        if not isinstance(session_id, str) or not session_id:
            await send_json(writer, {"type": "error", "session": "", "message": "missing session"})
            return

        if op == "set":
            record = data.get("record")
            if not isinstance(record, dict):
                await send_json(writer, {"type": "error", "session": session_id,
                                         "message": "record must be an object"})
                return
            self.records[session_id] = copy.deepcopy(record)
            await self.broadcast(session_id)

        elif op == "update":
            fields = data.get("fields")
            if not isinstance(fields, dict):
                await send_json(writer, {"type": "error", "session": session_id,
                                         "message": "fields must be an object"})
                return
            self.records.setdefault(session_id, {}).update(copy.deepcopy(fields))
            await self.broadcast(session_id)

        elif op == "subscribe":
            self.subscribers.setdefault(session_id, set()).add(writer)
            record = self.records.get(session_id)
            if record is not None:
                await send_json(writer, {"type": "record", "session": session_id, "record": record})

        elif op == "unsubscribe":
            self.drop(writer, session_id)

        else:
            await send_json(writer, {"type": "error", "session": session_id,
                                     "message": f"unknown op {op!r}"})

    def drop(self, writer, session_id=None):
        # forget a subscriber, for one session or all of them
        sessions = [session_id] if session_id else list(self.subscribers)
        for sid in sessions:
            listeners = self.subscribers.get(sid)
            if not listeners:
                continue
            listeners.discard(writer)
            if not listeners:
                del self.subscribers[sid]


async def handle_client(store, reader, writer):
    """one connection: read json lines until eof"""
    addr = writer.get_extra_info('peername')
    logger.info("client connected: %s", addr)
    try:
        while True:
            raw_data = await reader.readline()
            if not raw_data:
                break
            try:
                data = json.loads(raw_data.decode('utf-8'))
            except (UnicodeDecodeError, json.JSONDecodeError):
                logger.warning("malformed line from %s", addr)
                continue
            if isinstance(data, dict):
                await store.handle(writer, data)
    except ConnectionError as e:
        logger.warning("connection error with %s: %s", addr, e)
    finally:
        logger.info("client disconnected: %s", addr)
        store.drop(writer)
        writer.close()
        try:
            await writer.wait_closed()
        except ConnectionError:
            pass


async def start_server(host=HOST, port=PORT, store=None):
    store = store or SessionStore()
    return await asyncio.start_server(
        lambda r, w: handle_client(store, r, w), host, port)


async def main(host=HOST, port=PORT):
    server = await start_server(host, port)
    addr = server.sockets[0].getsockname()
    logger.info("store serving on %s", addr)
    async with server:
        await server.serve_forever()


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description="tic-tac-toe session store")
    parser.add_argument("--host", default=HOST)
    parser.add_argument("--port", type=int, default=PORT)
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(),
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    try:
        asyncio.run(main(args.host, args.port))
    except KeyboardInterrupt:
        logger.info("store stopped")
