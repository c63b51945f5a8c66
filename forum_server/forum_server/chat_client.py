"""
CLI client for the forum chat room.

Supports:
- HTTP register / login:          POST /api/v1/register, POST /api/v1/login
- HTTP chat history:              GET  /api/chat/history
- WebSocket chat:                 /ws/chat/?token=<jwt>

WebSocket protocol:
- Client sends {"content": "..."}; without a token the connection is a read-only guest.
- Server sends {"type":1,"content":...,"sender":...,"timestamp":...,"user_id":...}
  for chat lines and {"type":2,"content":"ping"} probes, which the client
  answers with {"type":2,"content":"pong"}.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import urllib.parse
from datetime import datetime
from typing import Any, Dict, Optional

import aiohttp
import websockets

PONG_FRAME = json.dumps({"type": 2, "content": "pong"}, separators=(",", ":"))


def _rstrip_slash(s: str) -> str:
    return s[:-1] if s.endswith("/") else s


def _ws_chat_url(ws_base: str, token: Optional[str]) -> str:
    url = f"{_rstrip_slash(ws_base)}/ws/chat/"
    if token:
        url += f"?token={urllib.parse.quote(token)}"
    return url


def _http_url(http_base: str, path: str) -> str:
    return f"{_rstrip_slash(http_base)}{path}"


async def _stdin_lines() -> str:
    return await asyncio.to_thread(sys.stdin.readline)


def format_event(msg: Dict[str, Any]) -> str:
    ts = msg.get("timestamp")
    when = datetime.fromtimestamp(ts).strftime("%H:%M:%S") if isinstance(ts, int) else "--:--:--"
    return f"[{when}] {msg.get('sender') or '?'}: {msg.get('content', '')}"


class HttpClient:
    def __init__(self, http_base: str):
        self.http_base = http_base
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "HttpClient":
        self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def _json(self, resp: aiohttp.ClientResponse, path: str) -> Any:
        text = await resp.text()
        try:
            data = json.loads(text) if text else {}
        except json.JSONDecodeError:
            raise RuntimeError(f"Non-JSON response from {path}: {resp.status} {text}")
        if resp.status >= 400:
            raise RuntimeError(f"HTTP {resp.status}: {data}")
        return data

    async def post_json(self, path: str, payload: Dict[str, Any]) -> Any:
        assert self._session is not None
        async with self._session.post(_http_url(self.http_base, path), json=payload) as resp:
            return await self._json(resp, path)

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        assert self._session is not None
        async with self._session.get(_http_url(self.http_base, path), params=params) as resp:
            return await self._json(resp, path)

    async def login(self, username: str, password: str) -> str:
        data = await self.post_json("/api/v1/login", {"username": username, "password": password})
        return data["access_token"]

    async def register(self, username: str, password: str, email: str) -> str:
        data = await self.post_json(
            "/api/v1/register", {"username": username, "password": password, "email": email}
        )
        return data["accessToken"]


async def ws_chat(*, ws_base: str, token: Optional[str], origin: Optional[str]) -> int:
    headers = [("Origin", origin)] if origin else None

    async with websockets.connect(_ws_chat_url(ws_base, token), additional_headers=headers) as ws:
        if not token:
            sys.stderr.write("Connected as guest (read-only).\n")

        async def _reader() -> None:
            async for raw in ws:
                try:
                    msg = json.loads(raw)
                except json.JSONDecodeError:
                    continue
                if msg.get("type") == 2:
                    if msg.get("content") == "ping":
                        await ws.send(PONG_FRAME)
                    continue
                sys.stdout.write(format_event(msg) + "\n")
                sys.stdout.flush()

        reader = asyncio.create_task(_reader())
        try:
            while not reader.done():
                line = (await _stdin_lines()).rstrip("\n")
                if not line:
                    if sys.stdin.closed:
                        break
                    continue
                await ws.send(json.dumps({"content": line}, ensure_ascii=False))
        finally:
            reader.cancel()
    return 0


async def main() -> int:
    parser = argparse.ArgumentParser(description="CLI client for the forum chat room")
    parser.add_argument("--http", default="http://localhost:8000", help="HTTP base, e.g. http://localhost:8000")
    parser.add_argument("--ws", default="ws://localhost:8000", help="WS base, e.g. ws://localhost:8000")
    parser.add_argument("--origin", help="Optional Origin header for WebSocket handshake")

    sub = parser.add_subparsers(dest="cmd", required=True)

    p_reg = sub.add_parser("register", help="Create an account and print its token")
    p_reg.add_argument("--username", required=True)
    p_reg.add_argument("--password", required=True)
    p_reg.add_argument("--email", required=True)

    p_login = sub.add_parser("login", help="Log in and print the token")
    p_login.add_argument("--username", required=True)
    p_login.add_argument("--password", required=True)

    p_hist = sub.add_parser("history", help="Print recent chat messages (HTTP)")
    p_hist.add_argument("--limit", type=int, default=50)
    p_hist.add_argument("--before", type=int, help="Unix timestamp; only older messages")

    p_chat = sub.add_parser("chat", help="Join the chat room over WebSocket")
    p_chat.add_argument("--token", help="Access token; omit to join as a read-only guest")
    p_chat.add_argument("--username", help="Log in first with these credentials")
    p_chat.add_argument("--password")

    args = parser.parse_args()

    if args.cmd == "chat":
        token = args.token
        if not token and args.username:
            async with HttpClient(args.http) as http:
                token = await http.login(args.username, args.password or "")
        return await ws_chat(ws_base=args.ws, token=token, origin=args.origin)

    async with HttpClient(args.http) as http:
        if args.cmd == "register":
            print(await http.register(args.username, args.password, args.email))
            return 0
        if args.cmd == "login":
            print(await http.login(args.username, args.password))
            return 0
        if args.cmd == "history":
            params = {"limit": args.limit}
            if args.before:
                params["before"] = args.before
            for msg in reversed(await http.get_json("/api/chat/history", params=params)):
                print(format_event(msg))
            return 0

    return 2


def run() -> None:
    try:
        raise SystemExit(asyncio.run(main()))
    except KeyboardInterrupt:
        raise SystemExit(130)


if __name__ == "__main__":
    run()
