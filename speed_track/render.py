"""Console rendering of tracker status updates."""

from __future__ import annotations

from speed_track.errors import (
    PermissionDenied,
    SettingsResolutionRequired,
    UpstreamFailure,
)
from speed_track.status import Error, Loading, Ready, Status, Stopped


def error_hint(cause: Exception) -> str:
    """What the user has to do before the tracker can be re-armed."""

    match cause:
        case PermissionDenied():
            return "请授予定位权限后重新开始"
        case SettingsResolutionRequired(resolution=resolution):
            return f"请按提示修改定位设置后重新开始（resolution={resolution!r}）"
        case UpstreamFailure():
            return "定位服务失败，请稍后重试"
        case _:
            return "未知错误"


def render_status(status: Status) -> str:
    """One console line per status."""

    match status:
        case Loading():
            return "[等待定位] ..."
        case Ready(speed_kmh=speed):
            return f"[速度] {speed:.2f} km/h"
        case Stopped(average_kmh=None):
            return "[已停止] 平均速度：无数据"
        case Stopped(average_kmh=average):
            return f"[已停止] 平均速度：{average:.2f} km/h"
        case Error(cause=cause):
            return f"[错误] {type(cause).__name__}: {cause}（{error_hint(cause)}）"
    raise TypeError(f"unknown status: {status!r}")
