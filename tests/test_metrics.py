import math
import unittest

from schedule_analysis.cpm import analyze_critical_path
from schedule_analysis.engine import compute_performance_metrics
from schedule_analysis.models import (
    Actuals,
    CriticalPathAnalysis,
    Dependency,
    Resource,
    ResourceAssignment,
    Task,
)


class TestPerformanceMetrics(unittest.TestCase):
    def setUp(self):
        self.tasks = [
            Task("T1", duration=5, progress=50,
                 resources=[ResourceAssignment("R1", 1, 1000)],
                 actuals=Actuals(progress=40, cost=500)),
            Task("T2", duration=3, progress=100, dependencies=[Dependency("T1")],
                 resources=[ResourceAssignment("R2", 1, 500)],
                 actuals=Actuals(progress=100, cost=600)),
        ]
        self.resources = [Resource("R1", max_units=1), Resource("R2", max_units=2)]

    def test_earned_value_indices(self):
        metrics = compute_performance_metrics(self.tasks, self.resources)

        self.assertAlmostEqual(metrics.planned_value, 1000.0)
        self.assertAlmostEqual(metrics.earned_value, 900.0)
        self.assertAlmostEqual(metrics.actual_cost, 1100.0)
        self.assertAlmostEqual(metrics.schedule_performance_index, 0.9)
        cpi = 900.0 / 1100.0
        self.assertAlmostEqual(metrics.cost_performance_index, cpi)

        eac = 1100.0 + (900.0 - 1100.0) / cpi
        self.assertAlmostEqual(metrics.estimate_at_completion, eac)
        self.assertAlmostEqual(metrics.estimate_to_complete, eac - 1100.0)
        self.assertAlmostEqual(metrics.variance_at_completion, 900.0 - eac)

        self.assertAlmostEqual(metrics.budget_at_completion, 1500.0)
        self.assertAlmostEqual(metrics.schedule_variance, -100.0)
        self.assertAlmostEqual(metrics.cost_variance, -200.0)

    def test_resource_utilization_is_mean(self):
        metrics = compute_performance_metrics(self.tasks, self.resources)
        self.assertAlmostEqual(metrics.resource_utilization, 0.75)

    def test_zero_denominators_yield_zero(self):
        tasks = [Task("T1", duration=2), Task("T2", duration=1)]
        metrics = compute_performance_metrics(tasks, [])

        self.assertEqual(metrics.schedule_performance_index, 0)
        self.assertEqual(metrics.cost_performance_index, 0)
        self.assertEqual(metrics.estimate_at_completion, 0)
        self.assertEqual(metrics.resource_utilization, 0)
        self.assertEqual(metrics.critical_path_variance, 0)
        for value in vars(metrics).values():
            self.assertTrue(math.isfinite(value))

    def test_cost_without_earned_value(self):
        tasks = [
            Task("T1", duration=2, progress=20,
                 resources=[ResourceAssignment("R1", 1, 100)],
                 actuals=Actuals(cost=80)),
        ]
        metrics = compute_performance_metrics(tasks, [])

        self.assertEqual(metrics.cost_performance_index, 0)
        self.assertEqual(metrics.estimate_at_completion, 80)
        self.assertEqual(metrics.estimate_to_complete, 0)
        self.assertEqual(metrics.variance_at_completion, -80)

    def test_critical_path_variance(self):
        analysis = analyze_critical_path(self.tasks)
        metrics = compute_performance_metrics(self.tasks, self.resources, analysis)
        self.assertEqual(metrics.critical_path_variance, 0)

        shorter = CriticalPathAnalysis(
            schedule={},
            critical_task_ids=frozenset(),
            total_float={},
            free_float={},
            project_duration=10,
            critical_path_duration=8,
        )
        metrics = compute_performance_metrics(self.tasks, self.resources, shorter)
        self.assertAlmostEqual(metrics.critical_path_variance, 0.2)

    def test_zero_project_duration(self):
        analysis = analyze_critical_path([])
        metrics = compute_performance_metrics([], [], analysis)
        self.assertEqual(metrics.critical_path_variance, 0)


if __name__ == "__main__":
    unittest.main()
