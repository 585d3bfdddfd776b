from __future__ import annotations

import logging
from typing import Iterable, Optional

from .conflicts import compute_resource_utilization
from .models import CriticalPathAnalysis, PerformanceMetrics, Resource, Task

logger = logging.getLogger(__name__)


def _ratio(numerator: float, denominator: float) -> float:
    # Zero denominators yield 0 so NaN/inf never reach the caller
    return numerator / denominator if denominator else 0.0


def planned_value(task: Task) -> float:
    return task.progress / 100 * task.cost


def earned_value(task: Task) -> float:
    progress = task.actuals.progress if task.actuals and task.actuals.progress else 0
    return progress / 100 * task.cost


def actual_cost(task: Task) -> float:
    return task.actuals.cost if task.actuals and task.actuals.cost else 0.0


def compute_performance_metrics(
    tasks: Iterable[Task],
    resources: Iterable[Resource],
    analysis: Optional[CriticalPathAnalysis] = None,
) -> PerformanceMetrics:
    """
    Earned Value Management indices for a task snapshot.

    PV uses the reported progress, EV the progress recorded in actuals, AC the
    recorded actual cost. Ratios with a zero denominator are defined as 0.
    """
    tasks = list(tasks)

    pv = sum(planned_value(task) for task in tasks)
    ev = sum(earned_value(task) for task in tasks)
    ac = sum(actual_cost(task) for task in tasks)
    bac = sum(task.cost for task in tasks)

    spi = _ratio(ev, pv)
    cpi = _ratio(ev, ac)
    eac = ac + (ev - ac) / cpi if cpi else ac
    etc = eac - ac
    vac = ev - eac

    utilization = compute_resource_utilization(tasks, resources)
    mean_utilization = _ratio(sum(utilization.values()), len(utilization))

    if analysis is None:
        cp_variance = 0.0
    else:
        cp_variance = _ratio(
            analysis.project_duration - analysis.critical_path_duration,
            analysis.project_duration,
        )

    logger.info("EVM: PV=%.2f EV=%.2f AC=%.2f SPI=%.3f CPI=%.3f", pv, ev, ac, spi, cpi)
    return PerformanceMetrics(
        planned_value=pv,
        earned_value=ev,
        actual_cost=ac,
        schedule_performance_index=spi,
        cost_performance_index=cpi,
        estimate_at_completion=eac,
        estimate_to_complete=etc,
        variance_at_completion=vac,
        resource_utilization=mean_utilization,
        critical_path_variance=cp_variance,
        budget_at_completion=bac,
        schedule_variance=ev - pv,
        cost_variance=ev - ac,
    )
