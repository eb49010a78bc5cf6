from __future__ import annotations

import argparse
import json
import logging
import signal
from typing import Optional

from .bench import run_benchmark
from .config import Role, SessionConfig, discover_local_address, prompt, random_payload
from .constants import DEFAULT_PORT, DEFAULT_SIZE, DEFAULT_TIME, DEFAULT_TIMEOUT_MS
from .errors import ThroughputError, udp_errors
from .metrics import Report
from .net import Address
from .session import Session, finish

EXIT_INTERRUPTED = 130


def _emit(payload: dict, as_json: bool) -> None:
    print(json.dumps(payload, indent=2) if as_json else payload)


def _log_report(report: Report) -> None:
    logging.info("Jitter: %d%% (ratio %.4f)", report.jitter_percent, report.jitter_ratio)
    logging.info("Total transmitted: %dB in %ds", report.total_bytes, report.total_seconds)
    logging.info("Throughput: %sB/s (precise %.1fB/s)", report.gross_throughput, report.precise_throughput)


def _addresses(args: argparse.Namespace) -> tuple[Address, Address]:
    dest = args.dest or prompt("Destination IP or Domain Name: ")
    bind = args.bind or discover_local_address()
    if bind is None:
        logging.warning("unable to find an address to bind to")
        bind = prompt("Source interface address: ")
    bind_port = args.port if args.bind_port is None else args.bind_port
    return (bind, bind_port), (dest, args.port)


def _run_session(config: SessionConfig, as_json: bool) -> int:
    with udp_errors("socket setup"):
        session = Session(config)
    logging.info("%s", session)

    report, stopped_by = finish(session)
    _log_report(report)
    _emit({"role": config.role.value, **report.as_dict(), "stopped_by_peer": stopped_by}, as_json)
    return 0


def cmd_host(args: argparse.Namespace) -> int:
    local, remote = _addresses(args)
    config = SessionConfig(
        local=local,
        remote=remote,
        role=Role.HOST,
        size=args.size,
        duration=args.time,
        payload=random_payload(args.size),
        timeout_ms=args.timeout_ms,
        loss_rate=args.loss_rate,
        delay_ms=args.delay_ms,
    )
    return _run_session(config, args.json)


def cmd_client(args: argparse.Namespace) -> int:
    local, remote = _addresses(args)
    config = SessionConfig(
        local=local,
        remote=remote,
        role=Role.CLIENT,
        timeout_ms=args.timeout_ms,
        loss_rate=args.loss_rate,
        delay_ms=args.delay_ms,
    )
    return _run_session(config, args.json)


def cmd_bench(args: argparse.Namespace) -> int:
    r = run_benchmark(size=args.size, duration=args.time, timeout_ms=args.timeout_ms or 2000)
    _log_report(r.host)
    _emit({"role": "bench", **r.as_dict()}, args.json)
    return 0


def _interrupt(signum: int, frame: object) -> None:
    raise KeyboardInterrupt(f"received signal {signum}")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="udptp", description="One-way UDP throughput test (stop-and-wait).")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_peer(x: argparse.ArgumentParser) -> None:
        x.add_argument("-d", "--dest", default=None, help="peer address (prompted when missing)")
        x.add_argument("-p", "--port", type=int, default=DEFAULT_PORT)
        x.add_argument("--bind", default=None, help="local address (auto-discovered when missing)")
        x.add_argument("--bind-port", type=int, default=None, help="local port (defaults to --port)")
        x.add_argument("--timeout-ms", type=int, default=DEFAULT_TIMEOUT_MS, help="0 blocks forever")
        x.add_argument("--loss-rate", type=float, default=0.0, help="simulate outbound packet loss")
        x.add_argument("--delay-ms", type=int, default=0, help="simulate outbound send delay")
        x.add_argument("--json", action="store_true")

    host = sub.add_parser("host", help="send data frames and measure the throughput")
    add_peer(host)
    host.add_argument("-z", "--size", type=int, default=DEFAULT_SIZE, help="payload size in bytes")
    host.add_argument("-t", "--time", type=int, default=DEFAULT_TIME, help="test duration in seconds")
    host.set_defaults(func=cmd_host)

    client = sub.add_parser("client", help="receive data frames; size and time come from the host")
    add_peer(client)
    client.set_defaults(func=cmd_client)

    bench = sub.add_parser("bench", help="run a host and a client against each other on loopback")
    bench.add_argument("-z", "--size", type=int, default=DEFAULT_SIZE)
    bench.add_argument("-t", "--time", type=int, default=DEFAULT_TIME)
    bench.add_argument("--timeout-ms", type=int, default=2000)
    bench.add_argument("--json", action="store_true")
    bench.set_defaults(func=cmd_bench)

    return p


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")
    signal.signal(signal.SIGTERM, _interrupt)

    try:
        return int(args.func(args))
    except ThroughputError as exc:
        logging.error("%s", exc)
        return exc.exit_code
    except ValueError as exc:
        logging.error("invalid configuration: %s", exc)
        return 2
    except KeyboardInterrupt:
        logging.info("interrupted")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    raise SystemExit(main())
