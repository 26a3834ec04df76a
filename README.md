# adbench

adbench comes in two parts:

- A small ad-redirect HTTP service, built on aiohttp. It runs as one or two independent
  instances, named "fiber" and "hertz".
- A load-testing client. It sends requests to those servers at high concurrency and reports
  latency, throughput and TCP connection counts.

## Installation

```
pip install .
```

To install the test dependencies as well:

```
pip install ".[test]"
```

## The servers

```
adbench-server [--framework fiber|hertz|both] [--fiber-port 8080] [--hertz-port 8081]
```

By default both instances start. "fiber" listens on port 8080 and "hertz" on port 8081. They run
until the process receives SIGINT (Ctrl+C) or SIGTERM.

Each instance serves three endpoints:

| Path              | Response                                                                                      |
|-------------------|-----------------------------------------------------------------------------------------------|
| `GET /ad?id=<id>` | `302 Found` redirect to `https://example.com/product/<id>`; `400` if `id` is missing or empty |
| `GET /stats`      | JSON `{"framework": "Fiber" or "Hertz", "requests": <number of /ad calls>}`                   |
| `GET /health`     | JSON `{"status": "ok", "time": <RFC 3339 local timestamp>}`                                   |

What each instance does:

- **Request counter.** Each instance keeps its own counter. Every call to `/ad` increments it,
  including calls rejected with `400`.
- **Server header.** Every response carries a `Server` header naming the instance.
- **Request bodies.** Request bodies are capped at 1 MB.
- **Error handling.** If a handler raises an error, the instance logs it and answers `500`.
- **Slow requests.** Any request that takes longer than one second is logged as a slow request.
- **Garbage collection.** Every 30 seconds a garbage collection runs and its result is logged.
- **Extra collections on "hertz".** The "hertz" instance also runs a collection after any request
  slower than 0.5 s, but only when its request counter is a multiple of 1000.

## The load-testing client

```
adbench-client [--host HOST] [--framework fiber|hertz|both] [-c 1000] [-d 10] [--delay 100] \
               [--fiber-port 443] [--hertz-port 443]
```

Options:

- `-c` sets the number of concurrent workers.
- `-d` sets how long the test runs, in seconds.
- `--delay` sets the pause, in milliseconds, that each worker takes after every request.

Targets:

- The "fiber" target is `https://<host>:<fiber-port>/ad?id=ad1`. `--host` defaults to
  `test1.example.com`.
- The "hertz" target is always `https://test2.example.com:<hertz-port>/ad?id=ad1`, whatever
  `--host` is set to.
- When both targets are selected, they are tested one after the other.

How requests are counted:

- Workers do not follow redirects.
- Each request has a 30-second timeout.
- A request succeeds if the status is `200` or `302`.
- Any other status, and any connection error or timeout, counts as a failure.

Once a second the client prints a progress line. It shows:

- requests so far
- success rate
- requests per second
- established and TIME_WAIT TCP connections
- number of running asyncio tasks

The TCP counts come from `ss` on Unix-like systems and from `netstat -an` on Windows. If the
command is unavailable, the counts stay at zero.

When a run ends, the client prints a summary:

- total, successful and failed requests
- RPS
- average, minimum and maximum latency of successful requests, in microseconds
- memory traced by `tracemalloc`
- current and peak asyncio task counts
- ESTABLISHED, TIME_WAIT and CLOSE_WAIT connection counts

## Using it from Python

To run a load test from your own code:

```python
from adbench.loadtest import run_benchmark

result = run_benchmark("http://localhost:8080/ad?id=ad1", 50, 5, 10)
print(result.successful_requests, result.min_latency, result.max_latency)
```

The arguments to `run_benchmark` are:

1. the URL
2. the concurrency
3. the duration in seconds
4. the delay in milliseconds

It returns a `BenchmarkResult`. Inside a running event loop, use `run_benchmark_async` instead.

Other helpers in `adbench.loadtest`:

- `get_tcp_stats()` returns a `TCPStats`.
- `parse_netstat()` and `count_data_lines()` parse the output of the system commands.
- `format_results()` renders the final report.

To build a server application and embed it yourself:

```python
from adbench.servers import Framework, create_app, run_server

app = create_app(Framework.FIBER)     # an aiohttp web.Application
run_server(Framework.HERTZ, 8081)     # serve until interrupted
```

`adbench.server_cli.serve_all(framework, fiber_port, hertz_port)` is a coroutine. It runs the
selected instances together until SIGINT or SIGTERM.

## What it does not do

- **No HTTPS on the servers.** The servers speak plain HTTP only. By default the client sends
  HTTPS requests to port 443, so to test the bundled servers with those defaults, put a
  TLS-terminating proxy in front of them. Otherwise, point `run_benchmark` at an `http://` URL.
- **Timeouts are not enforced.** The read, write and idle timeouts (60 s, 60 s and 180 s) appear
  in the startup log line, but nothing applies them.