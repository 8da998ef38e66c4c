"""Hook performance metrics.

Metrics persist in ``hooks/metrics/performance.json``:

    {
      "hooks": {"<name>": {"executions", "successes", "failures", "totalTime",
                           "avgTime", "minTime", "maxTime"}},
      "summary": {"totalExecutions", "totalTime", "avgTime"}
    }

All times are milliseconds.
"""

import logging
import time
from datetime import UTC, datetime
from typing import Any

from dashboard import config, store

logger = logging.getLogger("agile-dashboard.performance")

WARNING_THRESHOLD_MS = 1000
CRITICAL_THRESHOLD_MS = 5000
SAVE_EVERY = 10
TOP_N = 5


def empty_metrics() -> dict[str, Any]:
    return {"hooks": {}, "summary": {"totalExecutions": 0, "totalTime": 0, "avgTime": 0}}


def _round_ms(value: float) -> int:
    """Round half up, the way dashboards have always displayed averages."""
    return int(value + 0.5)


def _percent(part: float, whole: float) -> str:
    return f"{part / whole * 100:.2f}%"


def rate_duration(duration_ms: float) -> str:
    """Map a single execution time onto the dashboard's rating scale."""
    if duration_ms < 100:
        return "excellent"
    if duration_ms < 500:
        return "good"
    if duration_ms < 1000:
        return "fair"
    if duration_ms < 5000:
        return "poor"
    return "critical"


def generate_performance_report(metrics: dict[str, Any]) -> dict[str, Any]:
    """Build the report served by ``GET /api/hooks/performance``.

    Hooks that never recorded a positive average are left out of the
    slowest/fastest rankings but still count for most-executed.
    """
    report = {
        "summary": metrics.get("summary") or {"totalExecutions": 0, "totalTime": 0, "avgTime": 0},
        "hooks": metrics.get("hooks") or {},
        "topSlowest": [],
        "topFastest": [],
        "mostExecuted": [],
        "failureRate": {},
    }

    hooks = list(report["hooks"].items())
    timed = [(name, data) for name, data in hooks if (data.get("avgTime") or 0) > 0]

    report["topSlowest"] = [
        {"name": name, "avgTime": data.get("avgTime"), "maxTime": data.get("maxTime")}
        for name, data in sorted(timed, key=lambda item: item[1]["avgTime"], reverse=True)[:TOP_N]
    ]
    report["topFastest"] = [
        {"name": name, "avgTime": data.get("avgTime"), "minTime": data.get("minTime")}
        for name, data in sorted(timed, key=lambda item: item[1]["avgTime"])[:TOP_N]
    ]
    report["mostExecuted"] = [
        {"name": name, "executions": data.get("executions", 0), "totalTime": data.get("totalTime", 0)}
        for name, data in sorted(hooks, key=lambda item: item[1].get("executions", 0), reverse=True)[:TOP_N]
    ]

    for name, data in hooks:
        failures = data.get("failures", 0)
        executions = data.get("executions", 0)
        if failures > 0 and executions > 0:
            report["failureRate"][name] = {
                "rate": _percent(failures, executions),
                "failures": failures,
                "total": executions,
            }

    return report


class PerformanceMonitor:
    """Tracks hook execution times and persists them to the metrics file."""

    def __init__(self):
        self.metrics = self.load_metrics()

    def load_metrics(self) -> dict[str, Any]:
        metrics = store.read_json_or_default(config.performance_path(), empty_metrics())
        metrics.setdefault("hooks", {})
        metrics.setdefault("summary", empty_metrics()["summary"])
        return metrics

    def save_metrics(self) -> None:
        store.write_json(config.performance_path(), self.metrics)

    def start_timing(self, hook_name: str) -> dict[str, Any]:
        return {"hookName": hook_name, "startTime": time.monotonic()}

    def end_timing(self, timing: dict[str, Any], success: bool = True) -> dict[str, Any]:
        """Record one execution started with :meth:`start_timing`.

        Returns the duration in milliseconds and its rating.
        """
        duration = _round_ms((time.monotonic() - timing["startTime"]) * 1000)
        self.record(timing["hookName"], duration, success)
        return {"duration": duration, "performance": rate_duration(duration)}

    def record(self, hook_name: str, duration: float, success: bool = True) -> None:
        hook = self.metrics["hooks"].setdefault(
            hook_name,
            {
                "executions": 0,
                "successes": 0,
                "failures": 0,
                "totalTime": 0,
                "avgTime": 0,
                "minTime": None,
                "maxTime": 0,
            },
        )
        hook["executions"] += 1
        if success:
            hook["successes"] += 1
        else:
            hook["failures"] += 1

        hook["totalTime"] += duration
        hook["avgTime"] = _round_ms(hook["totalTime"] / hook["executions"])
        hook["minTime"] = duration if hook.get("minTime") is None else min(hook["minTime"], duration)
        hook["maxTime"] = max(hook.get("maxTime") or 0, duration)

        summary = self.metrics["summary"]
        summary["totalExecutions"] = summary.get("totalExecutions", 0) + 1
        summary["totalTime"] = summary.get("totalTime", 0) + duration
        summary["avgTime"] = _round_ms(summary["totalTime"] / summary["totalExecutions"])

        self.check_performance(hook_name, duration)

        if summary["totalExecutions"] % SAVE_EVERY == 0:
            self.save_metrics()

    def check_performance(self, hook_name: str, duration: float) -> None:
        if duration > CRITICAL_THRESHOLD_MS:
            self.log_alert("critical", hook_name, duration)
        elif duration > WARNING_THRESHOLD_MS:
            self.log_alert("warning", hook_name, duration)

    def log_alert(self, level: str, hook_name: str, duration: float) -> None:
        alert = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": level,
            "hookName": hook_name,
            "duration": duration,
            "message": f"Hook {hook_name} took {duration}ms ({level} threshold exceeded)",
        }
        store.append_json_line(config.performance_alerts_path(), alert)
        logger.warning(f"[Performance {level.upper()}] {alert['message']}")

    def generate_report(self) -> dict[str, Any]:
        """Full report with tuning recommendations."""
        report = generate_performance_report(self.metrics)
        report["generated"] = datetime.now(UTC).isoformat()
        recommendations = []

        for hook in report["topSlowest"]:
            if hook["avgTime"] > CRITICAL_THRESHOLD_MS:
                recommendations.append(
                    f"CRITICAL: Hook '{hook['name']}' averages {hook['avgTime']}ms - consider disabling or optimizing"
                )
            elif hook["avgTime"] > WARNING_THRESHOLD_MS:
                recommendations.append(
                    f"WARNING: Hook '{hook['name']}' averages {hook['avgTime']}ms - monitor for degradation"
                )

        for name, data in report["failureRate"].items():
            if float(data["rate"].rstrip("%")) > 20:
                recommendations.append(f"Hook '{name}' has {data['rate']} failure rate - investigate root cause")

        report["recommendations"] = recommendations
        return report

    def reset(self) -> None:
        self.metrics = empty_metrics()
        self.save_metrics()
        logger.info("Hook performance metrics reset")
