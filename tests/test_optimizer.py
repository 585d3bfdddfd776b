import unittest

from schedule_analysis.config import EngineConfig
from schedule_analysis.cpm import analyze_critical_path
from schedule_analysis.engine import ScheduleEngine, optimize_schedule
from schedule_analysis.models import (
    ActionKind,
    Dependency,
    OptimizationFlags,
    Resource,
    ResourceAssignment,
    Task,
)


class TestScheduleOptimizer(unittest.TestCase):
    def setUp(self):
        self.resources = [Resource("R1", "Foreman", max_units=1), Resource("R2", "Crew")]
        self.tasks = [
            Task("T1", "Foundations", duration=5, start=0,
                 resources=[ResourceAssignment("R1", 1, 100)]),
            Task("T2", "Frame", duration=3, start=5, dependencies=[Dependency("T1")],
                 resources=[ResourceAssignment("R2", 1, 2000)]),
            Task("T3", "Roof", duration=1, start=8, dependencies=[Dependency("T2")],
                 resources=[ResourceAssignment("R2", 1, 50)]),
            Task("T4", "Survey", duration=2, start=1,
                 resources=[ResourceAssignment("R1", 1, 0)]),
        ]

    def test_crash_critical_tasks(self):
        result = optimize_schedule(self.tasks, self.resources, OptimizationFlags(optimize_duration=True))
        crashes = result.duration_optimization.actions

        self.assertEqual([a.task_id for a in crashes], ["T1", "T2"])
        self.assertTrue(all(a.kind is ActionKind.CRASH for a in crashes))
        self.assertEqual(crashes[0].impact.duration_delta, -1)
        self.assertAlmostEqual(crashes[0].impact.cost_delta, 20.0)
        self.assertAlmostEqual(crashes[1].impact.cost_delta, 400.0)
        self.assertAlmostEqual(crashes[0].impact.risk_delta, 0.3)

        self.assertEqual(result.duration_optimization.original_duration, 9)
        self.assertEqual(result.duration_optimization.optimized_duration, 7)
        self.assertEqual(result.duration_optimization.reduction, 2)

    def test_reallocate_expensive_tasks(self):
        result = optimize_schedule(self.tasks, self.resources, OptimizationFlags(optimize_cost=True))
        cost = result.cost_optimization

        self.assertEqual([a.task_id for a in cost.actions], ["T2"])
        self.assertIs(cost.actions[0].kind, ActionKind.RESOURCE_REALLOCATION)
        self.assertAlmostEqual(cost.actions[0].impact.cost_delta, -300.0)
        self.assertAlmostEqual(cost.actions[0].impact.risk_delta, 0.2)
        self.assertAlmostEqual(cost.original_cost, 2150.0)
        self.assertAlmostEqual(cost.optimized_cost, 1850.0)
        self.assertAlmostEqual(cost.savings, 300.0)

    def test_delay_later_task_for_each_conflict(self):
        result = optimize_schedule(self.tasks, self.resources, OptimizationFlags(optimize_resources=True))

        self.assertEqual(len(result.resource_leveling.resource_conflicts), 1)
        leveling = result.resource_leveling.leveling_actions
        self.assertEqual([a.task_id for a in leveling], ["T4"])
        self.assertAlmostEqual(leveling[0].duration_impact, 0.2)

        delays = [a for a in result.actions if a.kind is ActionKind.DELAY]
        self.assertEqual(len(delays), 1)
        self.assertAlmostEqual(delays[0].impact.duration_delta, 0.2)
        self.assertAlmostEqual(delays[0].impact.cost_delta, 0.0)
        self.assertAlmostEqual(delays[0].impact.risk_delta, 0.1)

    def test_same_start_delays_second_task(self):
        tasks = [
            Task("A", duration=4, resources=[ResourceAssignment("R1", 1, 200)]),
            Task("B", duration=4, resources=[ResourceAssignment("R1", 1, 200)]),
        ]
        result = optimize_schedule(tasks, self.resources, OptimizationFlags(optimize_resources=True))
        action = result.actions[0]
        self.assertEqual(action.task_id, "B")
        self.assertAlmostEqual(action.impact.cost_delta, 10.0)

    def test_actions_are_ranked(self):
        flags = OptimizationFlags(optimize_duration=True, optimize_cost=True, optimize_resources=True)
        result = optimize_schedule(self.tasks, self.resources, flags)

        self.assertEqual(
            [(a.task_id, a.kind) for a in result.actions],
            [
                ("T1", ActionKind.CRASH),
                ("T2", ActionKind.CRASH),
                ("T2", ActionKind.RESOURCE_REALLOCATION),
                ("T4", ActionKind.DELAY),
            ],
        )

    def test_targets_already_met(self):
        flags = OptimizationFlags(
            optimize_duration=True, optimize_cost=True, max_duration=9, max_cost=5000
        )
        result = optimize_schedule(self.tasks, self.resources, flags)
        self.assertEqual(result.actions, ())
        self.assertEqual(result.duration_optimization.optimized_duration, 9)
        self.assertEqual(result.cost_optimization.savings, 0)

    def test_duration_target_ignores_project_start(self):
        config = EngineConfig(project_start=100)
        flags = OptimizationFlags(optimize_duration=True, max_duration=9)
        result = optimize_schedule(self.tasks, self.resources, flags, config)

        self.assertEqual(result.duration_optimization.original_duration, 9)
        self.assertEqual(result.duration_optimization.actions, ())

        flags = OptimizationFlags(optimize_duration=True, max_duration=8)
        result = optimize_schedule(self.tasks, self.resources, flags, config)
        self.assertEqual(result.duration_optimization.optimized_duration, 7)
        self.assertEqual(result.duration_optimization.reduction, 2)

    def test_no_flags_still_reports_leveling(self):
        result = optimize_schedule(self.tasks, self.resources)
        self.assertEqual(result.actions, ())
        self.assertEqual(result.optimized_tasks, tuple(self.tasks))
        self.assertEqual(len(result.resource_leveling.leveling_actions), 1)

    def test_uses_supplied_analysis(self):
        analysis = analyze_critical_path(self.tasks)
        flags = OptimizationFlags(optimize_duration=True)
        reused = ScheduleEngine().optimize_schedule(self.tasks, self.resources, flags, analysis=analysis)
        fresh = optimize_schedule(self.tasks, self.resources, flags)
        self.assertEqual(reused.actions, fresh.actions)

    def test_single_unit_critical_task_not_crashed(self):
        tasks = [Task("A", duration=1), Task("B", duration=1, dependencies=[Dependency("A")])]
        result = optimize_schedule(tasks, [], OptimizationFlags(optimize_duration=True))
        self.assertEqual(result.duration_optimization.actions, ())


if __name__ == "__main__":
    unittest.main()
