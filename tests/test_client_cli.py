import pytest

from adbench.client_cli import DEFAULT_HOST, HERTZ_HOST, build_targets, main, parse_args


def test_build_targets_both_in_order():
    targets = build_targets("bench.example.com", "both", 443, 8443)
    assert [t.label for t in targets] == ["Fiber", "Hertz"]
    assert targets[0].url == "https://bench.example.com:443/ad?id=ad1"
    assert targets[1].host == HERTZ_HOST
    assert targets[1].url == f"https://{HERTZ_HOST}:8443/ad?id=ad1"


def test_build_targets_single_framework():
    fiber = build_targets("bench.example.com", "fiber", 9000, 9001)
    hertz = build_targets("bench.example.com", "hertz", 9000, 9001)
    assert [t.port for t in fiber] == [9000]
    assert [t.port for t in hertz] == [9001]


def test_build_targets_unknown_framework_is_empty():
    assert build_targets("bench.example.com", "gin", 1, 2) == []


def test_parse_args_defaults():
    args = parse_args([])
    assert args.host == DEFAULT_HOST
    assert args.framework == "both"
    assert args.concurrency == 1000
    assert args.duration == 10
    assert args.delay == 100
    assert args.fiber_port == 443
    assert args.hertz_port == 443


def test_parse_args_single_dash_flags():
    args = parse_args(
        ["-host", "bench.example.com", "-framework", "fiber", "-c", "5", "-d", "2",
         "-delay", "7", "-fiber-port", "8080", "-hertz-port", "8081"]
    )
    assert args.host == "bench.example.com"
    assert args.framework == "fiber"
    assert (args.concurrency, args.duration, args.delay) == (5, 2, 7)
    assert (args.fiber_port, args.hertz_port) == (8080, 8081)


def test_parse_args_rejects_non_integer():
    with pytest.raises(SystemExit):
        parse_args(["-c", "many"])


def test_main_without_matching_framework(capsys):
    assert main(["-framework", "none", "-host", "bench.example.com"]) == 0
    out = capsys.readouterr().out
    assert "目标主机: bench.example.com" in out
    assert "测试完成！" in out
    assert "=====" not in out