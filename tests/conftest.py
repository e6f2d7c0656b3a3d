"""Shared pytest fixtures for all test modules."""

import asyncio
import json
import os
import tempfile
from collections.abc import AsyncIterator, Awaitable, Callable, Iterator
from typing import Any

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from vassal.core.logging import configure as configure_logging
from vassal.messages.protocol import WorkerRecord

StreamFactory = Callable[[bytes], asyncio.StreamReader]
ServeFactory = Callable[..., Awaitable[str]]


@pytest.fixture(autouse=True, scope="session")
def _logging() -> None:
    # Same setup as the entry point, keeps log lines off stdout
    configure_logging()


def _worker(worker_id: int, **overrides: Any) -> dict[str, Any]:
    """Worker entry shaped like uWSGI 2.0 stats output."""
    worker = {
        "id": worker_id,
        "pid": 31758 + worker_id,
        "accepting": 1,
        "requests": 0,
        "delta_requests": 0,
        "exceptions": 0,
        "harakiri_count": 0,
        "signals": 0,
        "signal_queue": 0,
        "status": "idle",
        "rss": 0,
        "vsz": 0,
        "running_time": 0,
        "last_spawn": 1317235041,
        "respawn_count": 1,
        "tx": 0,
        "avg_rt": 0,
        "apps": [
            {
                "id": 0,
                "modifier1": 0,
                "mountpoint": "",
                "startup_time": 0,
                "requests": 0,
                "exceptions": 0,
                "chdir": "",
            }
        ],
        "cores": [{"id": 0, "requests": 0, "static_requests": 0, "in_request": 0}],
    }
    worker.update(overrides)
    return worker


@pytest.fixture
def sample_workers() -> list[dict[str, Any]]:
    return [
        _worker(
            1,
            status="busy",
            requests=120,
            rss=52_428_800,
            vsz=209_715_200,
            tx=40_960,
            avg_rt=1500,
        ),
        _worker(
            2,
            status="idle",
            requests=80,
            rss=50_331_648,
            vsz=209_715_200,
            tx=20_480,
            avg_rt=2500,
        ),
        _worker(3, status="cheap", respawn_count=3, harakiri_count=1),
        _worker(
            4,
            status="sig 15",
            requests=10,
            rss=1_048_576,
            vsz=4_194_304,
            avg_rt=500,
        ),
    ]


@pytest.fixture
def sample_payload(sample_workers: list[dict[str, Any]]) -> bytes:
    """Full stats document including the non-worker sections."""
    return json.dumps(
        {
            "version": "2.0.21",
            "listen_queue": 0,
            "listen_queue_errors": 0,
            "signal_queue": 0,
            "load": 0,
            "pid": 31757,
            "uid": 33,
            "gid": 33,
            "cwd": "/srv/app",
            "locks": [{"user 0": 0}, {"signal": 0}],
            "sockets": [
                {
                    "name": "/run/uwsgi/app.sock",
                    "proto": "uwsgi",
                    "queue": 0,
                    "max_queue": 100,
                    "shared": 0,
                    "can_offload": 0,
                }
            ],
            "workers": sample_workers,
        }
    ).encode()


@pytest.fixture
def sample_records() -> list[WorkerRecord]:
    # Mirrors the first two sample workers
    return [
        WorkerRecord(
            requests=120,
            status="busy",
            rss=52_428_800,
            vsz=209_715_200,
            tx=40_960,
            avg_request_time=1500,
            respawn_count=1,
        ),
        WorkerRecord(
            requests=80,
            status="idle",
            rss=50_331_648,
            vsz=209_715_200,
            tx=20_480,
            avg_request_time=2500,
            respawn_count=1,
        ),
    ]


@pytest.fixture
def make_stream() -> StreamFactory:
    """Build a finished asyncio.StreamReader holding the given bytes.

    Must be called from inside a running event loop.
    """

    def _make(data: bytes) -> asyncio.StreamReader:
        reader = asyncio.StreamReader()
        reader.feed_data(data)
        reader.feed_eof()
        return reader

    return _make


@pytest.fixture
def socket_dir() -> Iterator[str]:
    # tmp_path can exceed the unix socket path length limit
    with tempfile.TemporaryDirectory(prefix="vassal-") as directory:
        yield directory


@pytest_asyncio.fixture
async def unix_stats_server(socket_dir: str) -> AsyncIterator[ServeFactory]:
    """Serve a payload on a fresh stats socket, returns its unix:// address.

    Like uWSGI's stats server, the payload is written as soon as a client
    connects and the connection is then closed.
    """
    servers: list[asyncio.Server] = []

    async def _serve(payload: bytes) -> str:
        path = os.path.join(socket_dir, f"stats-{len(servers)}.sock")

        async def _handle(
            reader: asyncio.StreamReader, writer: asyncio.StreamWriter
        ) -> None:
            writer.write(payload)
            await writer.drain()
            writer.close()
            await writer.wait_closed()

        servers.append(await asyncio.start_unix_server(_handle, path=path))
        return f"unix://{path}"

    yield _serve

    for server in servers:
        server.close()
        await server.wait_closed()


@pytest_asyncio.fixture
async def http_stats_server() -> AsyncIterator[ServeFactory]:
    """Serve a payload over HTTP on localhost, returns the stats URL."""
    servers: list[TestServer] = []

    async def _serve(payload: bytes, status: int = 200) -> str:
        async def _handle(request: web.Request) -> web.Response:
            return web.Response(
                body=payload, status=status, content_type="application/json"
            )

        app = web.Application()
        app.router.add_get("/", _handle)
        server = TestServer(app)
        await server.start_server()
        servers.append(server)
        return str(server.make_url("/"))

    yield _serve

    for server in servers:
        await server.close()
