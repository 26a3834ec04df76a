"""Command-line client that benchmarks the ad redirect servers."""

from __future__ import annotations

import argparse
from typing import NamedTuple, Sequence

from adbench.loadtest import run_benchmark

DEFAULT_HOST = "test1.example.com"
HERTZ_HOST = "test2.example.com"
AD_PATH = "/ad?id=ad1"


class Target(NamedTuple):
    """One server to benchmark."""

    label: str
    host: str
    port: int
    url: str


def build_targets(host: str, framework: str, fiber_port: int, hertz_port: int) -> list[Target]:
    """Return the targets selected by ``framework`` (fiber, hertz or both)."""
    targets = []
    if framework in ("fiber", "both"):
        targets.append(
            Target("Fiber", host, fiber_port, f"https://{host}:{fiber_port}{AD_PATH}")
        )
    if framework in ("hertz", "both"):
        targets.append(
            Target(
                "Hertz", HERTZ_HOST, hertz_port, f"https://{HERTZ_HOST}:{hertz_port}{AD_PATH}"
            )
        )
    return targets


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse the client's command-line options."""
    parser = argparse.ArgumentParser(description="性能测试客户端")
    parser.add_argument("-host", "--host", default=DEFAULT_HOST, help="服务器主机地址")
    parser.add_argument(
        "-framework", "--framework", default="both", help="测试框架: fiber, hertz, 或 both"
    )
    parser.add_argument("-c", dest="concurrency", type=int, default=1000, help="并发连接数")
    parser.add_argument("-d", dest="duration", type=int, default=10, help="测试持续时间(秒)")
    parser.add_argument(
        "-delay", "--delay", type=int, default=100, help="每个请求的延迟时间(毫秒)"
    )
    parser.add_argument(
        "-fiber-port", "--fiber-port", dest="fiber_port", type=int, default=443,
        help="Fiber服务端口",
    )
    parser.add_argument(
        "-hertz-port", "--hertz-port", dest="hertz_port", type=int, default=443,
        help="Hertz服务端口",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Benchmark the selected servers one after another."""
    args = parse_args(argv)
    print("性能测试客户端 - 远程模式")
    print(f"目标主机: {args.host}")

    for target in build_targets(args.host, args.framework, args.fiber_port, args.hertz_port):
        print(
            f"\n===== 测试 {target.label} 框架 (主机: {target.host}, 端口: {target.port}) ====="
        )
        run_benchmark(target.url, args.concurrency, args.duration, args.delay)

    print("\n测试完成！")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())