"""Command-line interface for speed_track.

Run:
    python -m speed_track replay --csv track.csv
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict

from speed_track.csv_io import load_samples, write_samples
from speed_track.inspect import inspect_samples
from speed_track.models import DEFAULT_TZ, STOP_THRESHOLD_MS, SPEED_PRECISION, TrackerConfig
from speed_track.render import render_status
from speed_track.source import ReplaySource
from speed_track.status import Error, Status, Stopped
from speed_track.timeutils import dt_from_epoch_ms, format_elapsed
from speed_track.tracker import SpeedTracker

logger = logging.getLogger("speed_track")


def setup_logging(args: argparse.Namespace) -> None:
    """Setup logging configuration."""

    level = getattr(logging, args.log_level)
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%H:%M:%S")
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)


def _cmd_inspect(args: argparse.Namespace) -> int:
    samples, summary = load_samples(args.csv)
    res = inspect_samples(samples)

    print("### 行数")
    print(f"total_rows={summary.rows_total}, parsed={summary.rows_parsed}, skipped={summary.rows_skipped}")
    print()

    if res.min_time_ms is not None and res.max_time_ms is not None:
        print("### 时间范围")
        start = dt_from_epoch_ms(res.min_time_ms, args.tz)
        end = dt_from_epoch_ms(res.max_time_ms, args.tz)
        print(f"start={start.isoformat(sep=' ')}, end={end.isoformat(sep=' ')}")
        print()

    if res.delta is not None:
        print("### 采样间隔（秒）")
        print(
            f"count={res.delta.count}, min={res.delta.min_s:.3f}, median={res.delta.median_s:.3f}, "
            f"p95={res.delta.p95_s:.3f}, max={res.delta.max_s:.3f}"
        )
        print()

    print("### 时间戳问题（将被丢弃）")
    print(f"duplicates={res.duplicate_timestamps}, out_of_order={res.out_of_order}")
    print()

    print("### 轨迹")
    print(f"stationary={res.stationary}, distance_km={res.distance_m / 1000.0:.3f}")

    if args.json:
        payload = asdict(res) | {
            "rows_total": summary.rows_total,
            "rows_skipped": summary.rows_skipped,
            "fieldnames": list(summary.fieldnames),
        }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


def _cmd_replay(args: argparse.Namespace) -> int:
    samples, _ = load_samples(args.csv)
    if not samples:
        print(f"没有可用的定位点：{args.csv}", file=sys.stderr)
        return 1

    config = TrackerConfig(
        stop_threshold_ms=args.stop_threshold_ms,
        precision=args.precision,
        reset_history_on_start=not args.keep_history,
    )
    source = ReplaySource(samples)
    logger.info("回放 %s 个定位点：%s", len(samples), args.csv)
    started_ms = samples[0].timestamp_ms
    tracker = SpeedTracker(source, config=config)

    seen: list[Status] = []

    def _print(status: Status) -> None:
        seen.append(status)
        if args.quiet and not isinstance(status, (Stopped, Error)):
            return
        print(render_status(status))

    unsubscribe = tracker.channel.subscribe(_print)
    tracker.start()
    delivered = source.replay(batch_size=args.batch_size)
    unsubscribe()

    final = tracker.status
    elapsed = tracker.history[-1].timestamp_ms - started_ms if tracker.history else 0
    print()
    print(
        f"delivered={delivered}, recorded={len(tracker.history)}, rejected={tracker.rejected_samples}, "
        f"unused={source.remaining}, elapsed={format_elapsed(elapsed)}"
    )
    if not isinstance(final, (Stopped, Error)):
        print(f"轨迹结束时未检测到停止；当前平均速度：{tracker.trip_average()} km/h")

    if args.out:
        write_samples(tracker.history, args.out)
        print(f"已导出：{args.out}")

    if args.json:
        payload = {
            "status": type(final).__name__,
            "statuses": len(seen),
            "delivered": delivered,
            "recorded": len(tracker.history),
            "rejected": tracker.rejected_samples,
            "trip_average_kmh": tracker.trip_average(),
        }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 1 if isinstance(final, Error) else 0


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""

    p = argparse.ArgumentParser(prog="speed_track")
    p.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="日志级别（默认 WARNING）",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    p_ins = sub.add_parser("inspect", help="分析轨迹CSV的时间范围/采样间隔/时间戳问题")
    p_ins.add_argument("--csv", type=str, default="track.csv", help="输入CSV路径")
    p_ins.add_argument("--tz", type=str, default=DEFAULT_TZ, help="时区（IANA），默认 UTC")
    p_ins.add_argument("--json", action="store_true", help="额外输出JSON（便于后处理）")
    p_ins.set_defaults(func=_cmd_inspect)

    p_rep = sub.add_parser("replay", help="按顺序回放轨迹CSV，输出实时速度与停止时的平均速度")
    p_rep.add_argument("--csv", type=str, default="track.csv", help="输入CSV路径")
    p_rep.add_argument(
        "--stop-threshold-ms",
        type=int,
        default=STOP_THRESHOLD_MS,
        help="原地不动超过该毫秒数即判定停止（默认 30000）",
    )
    p_rep.add_argument("--precision", type=int, default=SPEED_PRECISION, help="速度保留小数位（默认 2）")
    p_rep.add_argument("--keep-history", action="store_true", help="重新开始时不清空历史（平均速度跨行程累计）")
    p_rep.add_argument("--batch-size", type=int, default=1, help="每次回调投递的定位点数")
    p_rep.add_argument("--quiet", action="store_true", help="只输出停止/错误状态")
    p_rep.add_argument("--out", type=str, default=None, help="导出带速度的历史点CSV")
    p_rep.add_argument("--json", action="store_true", help="额外输出JSON汇总")
    p_rep.set_defaults(func=_cmd_replay)

    return p


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""

    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
