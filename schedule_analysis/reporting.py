from __future__ import annotations

from typing import Dict, Iterable

import pandas as pd

from .metrics import actual_cost, earned_value, planned_value
from .models import Anchor, CriticalPathAnalysis, ResourceConflict, Task


def schedule_dataframe(tasks: Iterable[Task], analysis: CriticalPathAnalysis) -> pd.DataFrame:
    """Get calculation results as a pandas DataFrame, one row per task."""
    data = []
    for task in tasks:
        row = analysis.schedule.get(task.id)
        pred_str = ";".join(str(p) for p in task.dependencies)
        data.append(
            {
                "ID": task.id,
                "Name": task.name,
                "Status": task.status.value,
                "Progress": task.progress,
                "Duration": task.duration,
                "Predecessors": pred_str,
                "ES": row.early_start if row else "-",
                "EF": row.early_finish if row else "-",
                "LS": row.late_start if row else "-",
                "LF": row.late_finish if row else "-",
                "TF": row.total_float if row else "-",
                "FF": row.free_float if row else "-",
                "Critical": "Yes" if row and row.is_critical else "No",
            }
        )
    return pd.DataFrame(data)


def conflicts_dataframe(conflicts: Iterable[ResourceConflict]) -> pd.DataFrame:
    rows = [
        {
            "Resource": conflict.resource_id,
            "Resource Name": conflict.resource_name,
            "Tasks": ", ".join(conflict.task_ids),
            "Start": conflict.start,
            "End": conflict.end,
            "Overlap Ratio": round(conflict.overlap_ratio, 3),
            "Severity": conflict.severity.value,
            "Units": conflict.combined_units,
            "Over Allocated": conflict.over_allocated,
        }
        for conflict in conflicts
    ]
    return pd.DataFrame(
        rows,
        columns=[
            "Resource",
            "Resource Name",
            "Tasks",
            "Start",
            "End",
            "Overlap Ratio",
            "Severity",
            "Units",
            "Over Allocated",
        ],
    )


def earned_value_dataframe(tasks: Iterable[Task]) -> pd.DataFrame:
    """Per-task PV/EV/AC with a totals row."""
    frame = pd.DataFrame(
        [
            {
                "ID": task.id,
                "Budget": task.cost,
                "PV": planned_value(task),
                "EV": earned_value(task),
                "AC": actual_cost(task),
            }
            for task in tasks
        ],
        columns=["ID", "Budget", "PV", "EV", "AC"],
    )
    totals = frame[["Budget", "PV", "EV", "AC"]].sum()
    frame.loc[len(frame)] = ["TOTAL", totals["Budget"], totals["PV"], totals["EV"], totals["AC"]]
    frame["SV"] = frame["EV"] - frame["PV"]
    frame["CV"] = frame["EV"] - frame["AC"]
    return frame


def dependency_violations(tasks: Iterable[Task]) -> pd.DataFrame:
    """Relationships broken by the planned start/end dates the host supplied."""
    tasks = list(tasks)
    by_id = {task.id: task for task in tasks}
    rows = []
    for task in tasks:
        for rel in task.dependencies:
            pred = by_id.get(rel.predecessor_id)
            if pred is None:
                continue
            kind = rel.relation_type
            pred_anchor = pred.start if kind.predecessor_anchor is Anchor.START else pred.end
            own_anchor = task.start if kind.successor_anchor is Anchor.START else task.end
            violation = (pred_anchor + rel.lag) - own_anchor
            if violation > 0:
                own = "ES" if kind.successor_anchor is Anchor.START else "EF"
                theirs = "ES" if kind.predecessor_anchor is Anchor.START else "EF"
                rows.append(
                    {
                        "Activity": task.id,
                        "Predecessor": pred.id,
                        "Type": kind.code,
                        "Lag": rel.lag,
                        "Violation": violation,
                        "Constraint": f"{own} >= {theirs}({pred.id}) + {rel.lag}",
                    }
                )

    return pd.DataFrame(
        rows, columns=["Activity", "Predecessor", "Type", "Lag", "Violation", "Constraint"]
    )


def dependency_health(tasks: Iterable[Task]) -> Dict[str, object]:
    """Score the planned network from 0 to 100."""
    tasks = list(tasks)
    total_relations = sum(len(task.dependencies) for task in tasks)
    conflict_count = len(dependency_violations(tasks))

    linked = {dep.predecessor_id for task in tasks for dep in task.dependencies}
    isolated = sum(
        1 for task in tasks if not task.dependencies and task.id not in linked
    ) if len(tasks) > 1 else 0

    if total_relations == 0:
        base_score = 100
    else:
        base_score = max(0, int(100 - (conflict_count / total_relations) * 100))

    if isolated:
        base_score = max(0, base_score - min(20, isolated * 5))
    if total_relations < max(1, len(tasks) - 1):
        base_score = max(0, base_score - 10)

    status = "Healthy"
    if base_score < 70:
        status = "At Risk"
    if base_score < 40:
        status = "Critical"

    return {
        "score": base_score,
        "status": status,
        "total_relations": total_relations,
        "conflicts": conflict_count,
        "isolated": isolated,
    }
