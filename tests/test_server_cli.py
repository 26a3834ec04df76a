import asyncio
import socket

import aiohttp
import pytest

from adbench.server_cli import parse_args, selected_frameworks, serve_all
from adbench.servers import Framework


def _free_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


async def _wait_for_health(port):
    async with aiohttp.ClientSession() as session:
        for _ in range(100):
            try:
                async with session.get(f"http://127.0.0.1:{port}/stats") as response:
                    return await response.json()
            except aiohttp.ClientConnectionError:
                await asyncio.sleep(0.05)
    raise AssertionError("server did not come up")


@pytest.mark.parametrize(
    "framework, expected",
    [
        ("both", [Framework.FIBER, Framework.HERTZ]),
        ("fiber", [Framework.FIBER]),
        ("hertz", [Framework.HERTZ]),
        ("gin", []),
    ],
)
def test_selected_frameworks(framework, expected):
    assert selected_frameworks(framework) == expected


def test_parse_args_defaults():
    args = parse_args([])
    assert args.framework == "both"
    assert args.fiber_port == 8080
    assert args.hertz_port == 8081


def test_parse_args_single_dash_options():
    args = parse_args(["-framework", "hertz", "-hertz-port", "9000"])
    assert args.framework == "hertz"
    assert args.hertz_port == 9000
    assert args.fiber_port == 8080


@pytest.mark.asyncio
async def test_serve_all_serves_until_cancelled():
    port = _free_port()
    task = asyncio.create_task(serve_all("fiber", port, _free_port()))
    stats = await _wait_for_health(port)
    assert stats["framework"] == "Fiber"

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    with socket.socket() as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(("", port))
        sock.listen()
        assert sock.getsockname()[1] == port


@pytest.mark.asyncio
async def test_serve_all_reports_port_in_use():
    with socket.socket() as blocker:
        blocker.bind(("", 0))
        blocker.listen()
        port = blocker.getsockname()[1]
        with pytest.raises(OSError):
            await asyncio.wait_for(serve_all("hertz", _free_port(), port), timeout=10)