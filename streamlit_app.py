from __future__ import annotations

from pathlib import Path

import streamlit as st

from speed_track.csv_io import load_samples
from speed_track.models import DEFAULT_TZ, PositionSample, TrackerConfig
from speed_track.render import error_hint
from speed_track.source import ReplaySource
from speed_track.status import Error, Loading, Ready, Status, Stopped
from speed_track.timeutils import dt_from_epoch_ms, format_elapsed
from speed_track.tracker import SpeedTracker


@st.cache_data(show_spinner=False)
def _load(path_csv: str, mtime: float) -> list[PositionSample]:
    _ = mtime  # part of cache key so updated files reload automatically
    samples, _summary = load_samples(path_csv)
    return samples


def _replay(samples: list[PositionSample], config: TrackerConfig) -> tuple[SpeedTracker, list[Status]]:
    source = ReplaySource(samples)
    tracker = SpeedTracker(source, config=config)
    statuses: list[Status] = []
    tracker.channel.subscribe(statuses.append)
    tracker.start()
    source.replay()
    return tracker, statuses


def main() -> None:
    st.set_page_config(page_title="行程速度回放", layout="wide")
    st.title("行程速度回放：实时速度与停止时的平均速度")

    with st.sidebar:
        st.subheader("数据")
        path_csv = st.text_input("轨迹CSV路径", value="sample_data/track.csv")
        tz_name = st.text_input("时区（IANA）", value=DEFAULT_TZ)

        with st.expander("高级参数（通常不用改）", expanded=False):
            stop_threshold_ms = st.number_input("stop_threshold_ms（默认 30000）", value=30_000, step=1_000)
            precision = st.number_input("precision（默认 2）", value=2, min_value=0, max_value=6)

    p = Path(path_csv)
    if not p.exists():
        st.error(f"找不到文件：{path_csv!r}。可先运行 scripts/generate_sample_drive_csv.py 生成示例数据。")
        return

    try:
        samples = _load(path_csv, p.stat().st_mtime)
    except (KeyError, ValueError) as exc:
        st.exception(exc)
        return
    if not samples:
        st.warning("CSV中没有可用的定位点。")
        return

    config = TrackerConfig(stop_threshold_ms=int(stop_threshold_ms), precision=int(precision))
    tracker, statuses = _replay(samples, config)
    final = tracker.status

    c1, c2, c3, c4 = st.columns(4)
    match final:
        case Ready(speed_kmh=speed):
            c1.metric("当前速度", f"{speed:.2f} km/h")
        case Stopped(average_kmh=average):
            c1.metric("平均速度（已停止）", "无数据" if average is None else f"{average:.2f} km/h")
        case Error(cause=cause):
            c1.metric("状态", "错误")
            st.error(f"{type(cause).__name__}: {cause}（{error_hint(cause)}）")
        case Loading():
            c1.metric("状态", "等待定位")
    c2.metric("记录点数", str(len(tracker.history)))
    c3.metric("丢弃点数（时间戳未递增）", str(tracker.rejected_samples))
    if tracker.history:
        c4.metric("行程时长", format_elapsed(tracker.history[-1].timestamp_ms - tracker.history[0].timestamp_ms))

    st.subheader("速度曲线（km/h）")
    st.line_chart([{"speed_kmh": s.speed_kmh} for s in tracker.history], y="speed_kmh", height=320)

    st.subheader("状态序列")
    rows = [{"#": i, "status": type(s).__name__, "detail": repr(s)} for i, s in enumerate(statuses)]
    st.dataframe(rows, use_container_width=True, height=360)

    with st.expander("历史点明细", expanded=False):
        st.dataframe(
            [
                {
                    "time": dt_from_epoch_ms(s.timestamp_ms, tz_name).isoformat(sep=" "),
                    "latitude": s.latitude,
                    "longitude": s.longitude,
                    "speed_kmh": s.speed_kmh,
                }
                for s in tracker.history
            ],
            use_container_width=True,
            height=420,
        )


if __name__ == "__main__":
    main()
