"""Plain-text rendering of usage snapshots for status lines and tooltips."""

from .models import ProjectCostSnapshot, UsageSnapshot

WARN_UTILIZATION = 0.75
NAME_WIDTH = 12


def format_duration(seconds: float) -> str:
    if seconds < 3600:
        return f"{round(seconds / 60)}m"
    hours = int(seconds // 3600)
    mins = round((seconds % 3600) / 60)
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"


def format_tokens(n: int) -> str:
    if n >= 1_000_000:
        return f"{n / 1_000_000:.1f}M"
    if n >= 1_000:
        return f"{n / 1_000:.1f}K"
    return str(n)


def format_percent(utilization: float) -> str:
    return f"{round(utilization * 100)}%"


def build_bar(utilization: float, width: int = 8) -> str:
    filled = round(min(1.0, max(0.0, utilization)) * width)
    return "X" * filled + "." * (width - filled)


def truncate_name(name: str) -> str:
    return name[: NAME_WIDTH - 1] + "…" if len(name) > NAME_WIDTH else name


def build_label(data: UsageSnapshot, project_costs: list[ProjectCostSnapshot] = (), display_mode: str = "percent") -> str:
    """One-line status text, e.g. ``5h:42% 7d:13% | my-app:$1.20``."""
    if data.data_source == "no-credentials":
        return "Not logged in"
    if data.data_source == "no-data":
        return "Claude: run refresh"

    if display_mode == "cost":
        main = f"5h:${data.cost_5h:.2f} 7d:${data.cost_7d:.2f}"
    elif data.limit_status == "denied":
        main = "5h:100%✗"
    else:
        warn_5h = "⚠" if data.utilization_5h >= WARN_UTILIZATION else ""
        warn_7d = "⚠" if data.utilization_7d >= WARN_UTILIZATION else ""
        main = (
            f"5h:{format_percent(data.utilization_5h)}{warn_5h} "
            f"7d:{format_percent(data.utilization_7d)}{warn_7d}"
        )

    if len(project_costs) == 1:
        pj = project_costs[0]
        main += f" | {truncate_name(pj.project_name)}:${pj.cost_today:.2f}"
    elif project_costs:
        main += f" | PJ:${sum(p.cost_today for p in project_costs):.2f}"

    if data.data_source == "stale":
        main += f" [{round(data.cache_age_seconds / 60)}m ago]"
    return main


def build_tooltip(data: UsageSnapshot, project_costs: list[ProjectCostSnapshot] = ()) -> str:
    if data.data_source == "no-credentials":
        return "Claude Code is not logged in.\nRun: claude login"
    if data.data_source == "no-data":
        return "No usage data found.\nRun: claude-status status --refresh"

    age = data.cache_age_seconds
    updated = "just now" if age < 60 else f"{round(age / 60)}m ago"
    lines = [
        "Claude Code Usage",
        f"5h window:   {format_percent(data.utilization_5h)} [{build_bar(data.utilization_5h)}] "
        f"resets in {format_duration(data.reset_in_5h)}",
        f"7d window:   {format_percent(data.utilization_7d)} [{build_bar(data.utilization_7d)}] "
        f"resets in {format_duration(data.reset_in_7d)}",
        "",
        "Token Cost (local)",
        f"5h:   in:{format_tokens(data.tokens_in_5h)} out:{format_tokens(data.tokens_out_5h)}  ${data.cost_5h:.2f}",
        f"day:  ${data.cost_day:.2f}",
        f"7d:   ${data.cost_7d:.2f}",
    ]
    for pj in project_costs:
        lines += ["", f"Project: {pj.project_name}", f"  Today: ${pj.cost_today:.2f}  |  7d: ${pj.cost_7d:.2f}"]
    lines += ["", f"Last updated: {updated}"]
    return "\n".join(lines)
