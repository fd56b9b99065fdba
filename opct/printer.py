"""Build and render the table of plugin statuses."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional

from opct.podstatus import PodLookupError, get_plugin_pod, pod_status_string
from opct.sonobuoy import RUNNING_STATUS, AggregatorStatus
from opct.types import CERTIFICATION_NAMESPACE

_ROW_FORMAT = "%-34s | %-10s | %-10s | %-25s | %-50s"
_DAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


@dataclass
class PrintablePluginStatus:
    name: str
    status: str
    result: str
    progress: str
    message: str


@dataclass
class PrintableStatus:
    global_status: str
    current_time: str
    elapsed_time: str
    plugin_statuses: list[PrintablePluginStatus] = field(default_factory=list)


def _rfc1123(moment: datetime) -> str:
    zone = moment.tzname() or "UTC"
    return (
        f"{_DAYS[moment.weekday()]}, {moment.day:02d} {_MONTHS[moment.month - 1]} "
        f"{moment.year} {moment:%H:%M:%S} {zone}"
    )


def _fraction(value: int, unit: int) -> str:
    whole, rest = divmod(value, unit)
    if not rest:
        return str(whole)
    digits = str(rest).rjust(len(str(unit)) - 1, "0").rstrip("0")
    return f"{whole}.{digits}"


def format_elapsed(delta: timedelta) -> str:
    """Render a duration the way Go's time.Duration prints, e.g. '1h2m3.5s'."""
    ns = ((delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds) * 1000
    sign = "-" if ns < 0 else ""
    ns = abs(ns)
    if ns == 0:
        return "0s"
    if ns < 1_000:
        return f"{sign}{ns}ns"
    if ns < 1_000_000:
        return f"{sign}{_fraction(ns, 1_000)}µs"
    if ns < 1_000_000_000:
        return f"{sign}{_fraction(ns, 1_000_000)}ms"
    hours, rest = divmod(ns, 3600 * 1_000_000_000)
    minutes, rest = divmod(rest, 60 * 1_000_000_000)
    seconds = _fraction(rest, 1_000_000_000)
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{sign}{minutes}m{seconds}s"
    return f"{sign}{seconds}s"


def _pod_state(kube: Any, plugin: str) -> str:
    if kube is None:
        return pod_status_string(None)
    try:
        pod = get_plugin_pod(kube, CERTIFICATION_NAMESPACE, plugin)
    except PodLookupError as exc:
        return str(exc)
    return pod_status_string(pod)


def build_printable_status(
    latest: AggregatorStatus,
    start_time: datetime,
    kube: Any = None,
    now: Optional[datetime] = None,
) -> PrintableStatus:
    """Summarise the aggregator status into printable rows sorted by plugin name."""
    if now is None:
        now = datetime.now(start_time.tzinfo)
    printable = PrintableStatus(
        global_status=latest.status,
        current_time=_rfc1123(now),
        elapsed_time=format_elapsed(now - start_time),
    )

    for pl in latest.plugins:
        progress = ""
        message = ""
        if pl.progress is not None:
            progress = (
                f"{pl.progress.completed}/{pl.progress.total} "
                f"({len(pl.progress.failures)} failures)"
            )
        # Without progress, the pod state tells why jobs are not running yet.
        if not progress:
            message = (
                "waiting for jobs initialization="
                f"PodStatus({_pod_state(kube, pl.plugin)})"
            )

        if pl.status == RUNNING_STATUS:
            if pl.progress is not None:
                message = pl.progress.message
        elif pl.result_status == "":
            message = pl.status or "waiting for post-processor..."
        else:
            passed = pl.result_status_counts.get("passed", 0)
            failed = pl.result_status_counts.get("failed", 0)
            if passed + failed != 0:
                message = (
                    f"Total tests processed: {passed + failed} "
                    f"({passed} pass / {failed} failed)"
                )

        printable.plugin_statuses.append(
            PrintablePluginStatus(
                name=pl.plugin,
                status=pl.status,
                result=pl.result_status,
                progress=progress,
                message=message,
            )
        )

    printable.plugin_statuses.sort(key=lambda p: p.name)
    return printable


def render_status(printable: PrintableStatus) -> str:
    """Text table of the status, ending with a newline."""
    lines = [
        f"{printable.current_time}|{printable.elapsed_time}> "
        f"Global Status: {printable.global_status}",
        _ROW_FORMAT % ("JOB_NAME", "STATUS", "RESULTS", "PROGRESS", "MESSAGE"),
    ]
    lines.extend(
        _ROW_FORMAT % (p.name, p.status, p.result, p.progress, p.message)
        for p in printable.plugin_statuses
    )
    return "\n".join(lines) + "\n"