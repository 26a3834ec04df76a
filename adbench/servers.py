"""Ad redirect HTTP servers with request counters, health and stats endpoints."""

from __future__ import annotations

import asyncio
import gc
import logging
import time
from contextlib import suppress
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable

from aiohttp import web

logger = logging.getLogger(__name__)

MAX_BODY_SIZE = 1024 * 1024
GC_INTERVAL_SECONDS = 30
SLOW_REQUEST_SECONDS = 1.0
GC_PRESSURE_SECONDS = 0.5
GC_PRESSURE_EVERY = 1000
READ_TIMEOUT_SECONDS = 60
WRITE_TIMEOUT_SECONDS = 60
IDLE_TIMEOUT_SECONDS = 180
MISSING_AD_ID_MESSAGE = "缺少广告ID参数"
INTERNAL_ERROR_MESSAGE = "服务器内部错误"

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


class Framework(str, Enum):
    """The server flavours that can be started."""

    FIBER = "fiber"
    HERTZ = "hertz"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


@dataclass
class _RequestCounter:
    value: int = 0

    def increment(self) -> int:
        self.value += 1
        return self.value


def target_url(ad_id: str) -> str:
    """Return the landing page an ad id redirects to."""
    return f"https://example.com/product/{ad_id}"


def _rfc3339_now() -> str:
    stamp = datetime.now().astimezone().replace(microsecond=0).isoformat()
    if stamp.endswith("+00:00"):
        return stamp[: -len("+00:00")] + "Z"
    return stamp


async def _collect_periodically(label: str) -> None:
    while True:
        await asyncio.sleep(GC_INTERVAL_SECONDS)
        collected = gc.collect()
        runs = sum(generation["collections"] for generation in gc.get_stats())
        logger.info("%s内存使用: 回收对象: %d, GC运行次数: %d", label, collected, runs)


def _recover_middleware(label: str):
    @web.middleware
    async def recover(request: web.Request, handler: Handler) -> web.StreamResponse:
        try:
            return await handler(request)
        except web.HTTPException:
            raise
        except Exception as exc:  # noqa: BLE001 - a failing handler must not kill the server
            logger.error("%s服务器发生panic: %s", label, exc)
            return web.Response(status=500, text=INTERNAL_ERROR_MESSAGE)

    return recover


def _slow_request_middleware(label: str):
    @web.middleware
    async def log_slow(request: web.Request, handler: Handler) -> web.StreamResponse:
        started = time.perf_counter()
        try:
            return await handler(request)
        finally:
            elapsed = time.perf_counter() - started
            if elapsed > SLOW_REQUEST_SECONDS:
                logger.warning(
                    "慢请求[%s]: %s %s 耗时: %.3fs", label, request.method, request.path, elapsed
                )

    return log_slow


def _gc_pressure_middleware(counter: _RequestCounter):
    @web.middleware
    async def relieve(request: web.Request, handler: Handler) -> web.StreamResponse:
        started = time.perf_counter()
        response = await handler(request)
        elapsed = time.perf_counter() - started
        if elapsed > GC_PRESSURE_SECONDS and counter.value % GC_PRESSURE_EVERY == 0:
            gc.collect()
        return response

    return relieve


def create_app(framework: Framework | str) -> web.Application:
    """Build the application for ``framework`` with its own request counter."""
    framework = Framework(framework)
    label = framework.display_name
    counter = _RequestCounter()

    middlewares = [_recover_middleware(label), _slow_request_middleware(label)]
    if framework is Framework.HERTZ:
        middlewares.append(_gc_pressure_middleware(counter))

    app = web.Application(middlewares=middlewares, client_max_size=MAX_BODY_SIZE)

    async def ad(request: web.Request) -> web.Response:
        counter.increment()
        ad_id = request.query.get("id", "")
        if not ad_id:
            return web.Response(status=400, text=MISSING_AD_ID_MESSAGE)
        return web.Response(status=302, headers={"Location": target_url(ad_id)})

    async def stats(request: web.Request) -> web.Response:
        return web.json_response({"framework": label, "requests": counter.value})

    async def health(request: web.Request) -> web.Response:
        return web.json_response({"status": "ok", "time": _rfc3339_now()})

    async def set_server_header(request: web.Request, response: web.StreamResponse) -> None:
        response.headers["Server"] = label

    async def gc_controller(app: web.Application) -> AsyncIterator[None]:
        task = asyncio.create_task(_collect_periodically(label))
        yield
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    app.router.add_get("/ad", ad)
    app.router.add_get("/stats", stats)
    app.router.add_get("/health", health)
    app.on_response_prepare.append(set_server_header)
    app.cleanup_ctx.append(gc_controller)
    return app


async def run_server_async(framework: Framework | str, port: int) -> None:
    """Serve ``framework`` on ``port`` until cancelled."""
    framework = Framework(framework)
    label = framework.display_name
    runner = web.AppRunner(create_app(framework))
    await runner.setup()
    try:
        site = web.TCPSite(runner, port=port)
        gc.collect()
        await site.start()
        print(f"{label}服务启动在端口 {port}")
        logger.info(
            "%s服务器配置: 读超时: %ds, 写超时: %ds, 空闲超时: %ds",
            label,
            READ_TIMEOUT_SECONDS,
            WRITE_TIMEOUT_SECONDS,
            IDLE_TIMEOUT_SECONDS,
        )
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()


def run_server(framework: Framework | str, port: int) -> None:
    """Serve ``framework`` on ``port`` in a fresh event loop."""
    asyncio.run(run_server_async(framework, port))