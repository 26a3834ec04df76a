"""Concurrent HTTP load generator with latency and TCP connection statistics."""

from __future__ import annotations

import asyncio
import math
import subprocess
import sys
import time
import tracemalloc
from dataclasses import dataclass

import aiohttp

INT64_MAX = 2**63 - 1
SUCCESS_STATUSES = frozenset({200, 302})
REQUEST_TIMEOUT_SECONDS = 30
IDLE_CONNECTION_TIMEOUT_SECONDS = 90
MONITOR_INTERVAL_SECONDS = 1.0


@dataclass
class TCPStats:
    """Counts of TCP connections by state."""

    established: int = 0
    time_wait: int = 0
    close_wait: int = 0


@dataclass
class BenchmarkResult:
    """Counters collected during a benchmark run; latencies are in microseconds."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_latency: int = 0
    min_latency: int = INT64_MAX
    max_latency: int = 0
    tcp_established: int = 0
    tcp_time_wait: int = 0
    tcp_close_wait: int = 0
    memory_usage: int = 0
    max_tasks: int = 0

    def record(self, latency_us: int, status: int) -> bool:
        """Record a completed response; return True if it counts as a success."""
        self.total_requests += 1
        if status not in SUCCESS_STATUSES:
            self.failed_requests += 1
            return False
        self.successful_requests += 1
        self.total_latency += latency_us
        self.min_latency = min(self.min_latency, latency_us)
        self.max_latency = max(self.max_latency, latency_us)
        return True

    def record_failure(self) -> None:
        """Record a request that produced no response."""
        self.total_requests += 1
        self.failed_requests += 1

    def observe_tasks(self, count: int) -> None:
        """Keep the highest number of concurrent tasks seen."""
        self.max_tasks = max(self.max_tasks, count)

    def update_tcp(self, stats: TCPStats) -> None:
        """Store the latest TCP connection counts."""
        self.tcp_established = stats.established
        self.tcp_time_wait = stats.time_wait
        self.tcp_close_wait = stats.close_wait


def count_data_lines(output: str) -> int:
    """Count the lines of tabular command output, excluding the header line."""
    return len(output.splitlines()) - 1


def parse_netstat(output: str) -> TCPStats:
    """Count connection states in ``netstat -an`` output."""
    stats = TCPStats()
    for line in output.split("\n"):
        if "ESTABLISHED" in line:
            stats.established += 1
        elif "TIME_WAIT" in line:
            stats.time_wait += 1
        elif "CLOSE_WAIT" in line:
            stats.close_wait += 1
    return stats


def _command_output(*args: str) -> str | None:
    try:
        completed = subprocess.run(
            list(args), capture_output=True, text=True, errors="replace", check=True
        )
    except (OSError, subprocess.SubprocessError):
        return None
    return completed.stdout


def get_tcp_stats() -> TCPStats:
    """Query the system for TCP connection counts; unavailable counts stay zero."""
    if sys.platform.startswith("win"):
        output = _command_output("netstat", "-an")
        return parse_netstat(output) if output is not None else TCPStats()

    stats = TCPStats()
    for state, attr in (
        ("established", "established"),
        ("time-wait", "time_wait"),
        ("close-wait", "close_wait"),
    ):
        output = _command_output("ss", "-tan", "state", state)
        if output is not None:
            setattr(stats, attr, count_data_lines(output))
    return stats


def _ratio(numerator: float, denominator: float) -> float:
    if denominator == 0:
        if numerator == 0:
            return math.nan
        return math.copysign(math.inf, numerator)
    return numerator / denominator


def _fmt(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return f"{value:.2f}"


def format_results(result: BenchmarkResult, duration: float, current_tasks: int) -> str:
    """Render the final report; ``duration`` is in seconds."""
    success_rate = _ratio(result.successful_requests, result.total_requests) * 100
    rps = _ratio(result.total_requests, duration)
    lines = [
        "",
        "测试结果:",
        f"总请求数: {result.total_requests}",
        f"成功请求: {result.successful_requests} ({_fmt(success_rate)}%)",
        f"失败请求: {result.failed_requests}",
        f"每秒请求数 (RPS): {_fmt(rps)}",
    ]
    if result.successful_requests > 0:
        avg = result.total_latency / result.successful_requests
        lines += [
            f"平均延迟: {avg:.2f} 微秒",
            f"最小延迟: {result.min_latency} 微秒",
            f"最大延迟: {result.max_latency} 微秒",
        ]
    lines += [
        f"内存使用: {result.memory_usage / 1024 / 1024:.2f} MB",
        f"当前协程数量: {current_tasks}",
        f"最大协程数量: {result.max_tasks}",
        "",
        "TCP连接状态:",
        f"ESTABLISHED: {result.tcp_established}",
        f"TIME_WAIT: {result.tcp_time_wait}",
        f"CLOSE_WAIT: {result.tcp_close_wait}",
    ]
    return "\n".join(lines)


def _task_count() -> int:
    return len(asyncio.all_tasks())


async def _worker(
    session: aiohttp.ClientSession,
    url: str,
    result: BenchmarkResult,
    stop: asyncio.Event,
    delay_seconds: float,
) -> None:
    while not stop.is_set():
        started = time.perf_counter()
        try:
            async with session.get(url, allow_redirects=False) as response:
                latency = int((time.perf_counter() - started) * 1_000_000)
                status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError):
            result.record_failure()
        else:
            result.record(latency, status)
        await asyncio.sleep(delay_seconds)


async def _monitor(result: BenchmarkResult, stop: asyncio.Event, started: float) -> None:
    while True:
        try:
            await asyncio.wait_for(stop.wait(), timeout=MONITOR_INTERVAL_SECONDS)
            return
        except asyncio.TimeoutError:
            pass
        result.memory_usage = tracemalloc.get_traced_memory()[0]
        stats = await asyncio.to_thread(get_tcp_stats)
        result.update_tcp(stats)
        current = _task_count()
        result.observe_tasks(current)
        success_rate = _ratio(result.successful_requests, result.total_requests) * 100
        rps = _ratio(result.total_requests, time.monotonic() - started)
        print(
            f"\r已处理: {result.total_requests} 请求, 成功率: {_fmt(success_rate)}%, "
            f"RPS: {_fmt(rps)}, TCP-ESTAB: {stats.established}, "
            f"TCP-WAIT: {stats.time_wait}, Tasks: {current}     ",
            end="",
            flush=True,
        )


async def run_benchmark_async(
    url: str, concurrency: int, duration_seconds: float, delay_ms: float
) -> BenchmarkResult:
    """Hammer ``url`` with ``concurrency`` workers for ``duration_seconds``."""
    if concurrency < 0:
        raise ValueError(f"concurrency must not be negative: {concurrency}")

    print(f"开始测试 URL: {url}")
    print(f"并发连接: {concurrency}, 持续时间: {duration_seconds}秒, 请求延迟: {delay_ms}ms")

    started_tracing = not tracemalloc.is_tracing()
    if started_tracing:
        tracemalloc.start()

    result = BenchmarkResult()
    result.observe_tasks(_task_count())
    stop = asyncio.Event()
    connector = aiohttp.TCPConnector(
        limit=concurrency, keepalive_timeout=IDLE_CONNECTION_TIMEOUT_SECONDS
    )
    timeout = aiohttp.ClientTimeout(total=REQUEST_TIMEOUT_SECONDS)

    try:
        started = time.monotonic()
        async with aiohttp.ClientSession(connector=connector, timeout=timeout) as session:
            workers = [
                asyncio.create_task(_worker(session, url, result, stop, delay_ms / 1000))
                for _ in range(concurrency)
            ]
            monitor = asyncio.create_task(_monitor(result, stop, started))
            await asyncio.sleep(duration_seconds)
            result.observe_tasks(_task_count())
            stop.set()
            await asyncio.gather(*workers)
            await monitor
        duration = time.monotonic() - started
        print()
        print(format_results(result, duration, _task_count()))
    finally:
        if started_tracing:
            tracemalloc.stop()
    return result


def run_benchmark(
    url: str, concurrency: int, duration_seconds: float, delay_ms: float
) -> BenchmarkResult:
    """Run :func:`run_benchmark_async` in a fresh event loop."""
    return asyncio.run(run_benchmark_async(url, concurrency, duration_seconds, delay_ms))