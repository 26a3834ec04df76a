"""Command that starts one or both ad redirect servers."""

from __future__ import annotations

import argparse
import asyncio
import signal
from contextlib import suppress
from typing import Sequence

from adbench.servers import Framework, run_server_async

_STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def selected_frameworks(framework: str) -> list[Framework]:
    """Return the servers chosen by ``framework`` (fiber, hertz or both)."""
    chosen = []
    if framework in ("fiber", "both"):
        chosen.append(Framework.FIBER)
    if framework in ("hertz", "both"):
        chosen.append(Framework.HERTZ)
    return chosen


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse the server command's options."""
    parser = argparse.ArgumentParser(description="性能测试服务端")
    parser.add_argument(
        "-framework", "--framework", default="both", help="服务框架: fiber, hertz, 或 both"
    )
    parser.add_argument(
        "-fiber-port", "--fiber-port", dest="fiber_port", type=int, default=8080,
        help="Fiber服务端口",
    )
    parser.add_argument(
        "-hertz-port", "--hertz-port", dest="hertz_port", type=int, default=8081,
        help="Hertz服务端口",
    )
    return parser.parse_args(argv)


def _install_signal_handlers(loop: asyncio.AbstractEventLoop, stop: asyncio.Event) -> list:
    installed = []
    for sig in _STOP_SIGNALS:
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError, ValueError):
            continue
        installed.append(sig)
    return installed


async def serve_all(framework: str, fiber_port: int, hertz_port: int) -> None:
    """Run the selected servers until SIGINT or SIGTERM arrives."""
    ports = {Framework.FIBER: fiber_port, Framework.HERTZ: hertz_port}
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    installed = _install_signal_handlers(loop, stop)

    servers = []
    for chosen in selected_frameworks(framework):
        servers.append(asyncio.create_task(run_server_async(chosen, ports[chosen])))
        print(f"{chosen.display_name} 服务已启动，监听端口: {ports[chosen]}")
    stopper = asyncio.create_task(stop.wait())

    try:
        done, _ = await asyncio.wait([*servers, stopper], return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            if task is not stopper:
                task.result()
        print("\n收到退出信号，正在关闭服务器...")
    finally:
        for task in (*servers, stopper):
            task.cancel()
        await asyncio.gather(*servers, stopper, return_exceptions=True)
        for sig in installed:
            with suppress(NotImplementedError, RuntimeError, ValueError):
                loop.remove_signal_handler(sig)
    print("服务器已关闭")


def main(argv: Sequence[str] | None = None) -> int:
    """Start the servers chosen on the command line."""
    args = parse_args(argv)
    print("性能测试服务端")
    print("按 Ctrl+C 停止服务...")
    with suppress(KeyboardInterrupt):
        asyncio.run(serve_all(args.framework, args.fiber_port, args.hertz_port))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())