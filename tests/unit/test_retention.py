"""
Unit tests for retention planning and purging (xtracycle/cycle/retention.py).

Anchor full backup D is Thursday 2024-01-18 throughout.
"""

from datetime import date, timedelta
from pathlib import Path

import pytest

from xtracycle.cycle.identifiers import BackupKind
from xtracycle.cycle.retention import RetentionPlanner, PlanStatus, purge

from conftest import ANCHOR_DATE, full, incr, week_unit


D = ANCHOR_DATE


class TestRetentionPlanner:
    """Test RetentionPlanner.plan()."""

    def test_full_week_is_planned_in_order(self, memory_repository):
        """weeks_to_keep=1 looks back two weeks and returns the whole week unit."""
        target = D - timedelta(days=14)
        repository = memory_repository(backups=week_unit(target))

        plan = RetentionPlanner(repository).plan(D, weeks_to_keep=1)

        assert plan.status is PlanStatus.READY
        assert plan.target_full_date == target
        assert plan.identifiers == [full(target)] + [
            incr(target + timedelta(days=i)) for i in range(1, 7)
        ]
        assert [i.date for i in plan.identifiers] == [
            date(2024, 1, 4), date(2024, 1, 5), date(2024, 1, 6), date(2024, 1, 7),
            date(2024, 1, 8), date(2024, 1, 9), date(2024, 1, 10)
        ]
        assert plan.identifiers[0].kind is BackupKind.FULL

    def test_missing_incremental_aborts_whole_plan(self, memory_repository):
        target = D - timedelta(days=14)
        backups = [b for b in week_unit(target) if b != incr(D - timedelta(days=10))]
        repository = memory_repository(backups=backups)

        plan = RetentionPlanner(repository).plan(D, weeks_to_keep=1)

        assert plan.status is PlanStatus.INCOMPLETE_CHAIN
        assert plan.targets == ()
        assert plan.identifiers == []
        assert plan.missing_date == D - timedelta(days=10)
        assert 'Missing incremental backup at date 20240108' in plan.describe()

    @pytest.mark.parametrize("missing_offset", range(1, 7))
    def test_any_missing_day_empties_plan(self, memory_repository, missing_offset):
        target = D - timedelta(days=14)
        missing = incr(target + timedelta(days=missing_offset))
        repository = memory_repository(backups=[b for b in week_unit(target) if b != missing])

        plan = RetentionPlanner(repository).plan(D, weeks_to_keep=1)

        assert plan.status is PlanStatus.INCOMPLETE_CHAIN
        assert plan.targets == ()

    def test_missing_target_full_is_nothing_to_purge(self, memory_repository):
        """During warm-up there is no full backup old enough yet."""
        target = D - timedelta(days=14)
        backups = [b for b in week_unit(target) if b.kind is BackupKind.INCREMENTAL]
        repository = memory_repository(backups=backups + week_unit(D - timedelta(days=7)))

        plan = RetentionPlanner(repository).plan(D, weeks_to_keep=1)

        assert plan.status is PlanStatus.NOTHING_TO_PURGE
        assert plan.targets == ()
        assert plan.missing_date is None
        assert 'Nothing to purge yet' in plan.describe()

    def test_recent_weeks_are_never_planned(self, memory_repository):
        """With weeks_to_keep=2 the week D-14 is kept; only D-21 is a candidate."""
        repository = memory_repository(
            backups=week_unit(D - timedelta(days=14)) + week_unit(D - timedelta(days=7))
        )

        plan = RetentionPlanner(repository).plan(D, weeks_to_keep=2)

        assert plan.target_full_date == D - timedelta(days=21)
        assert plan.status is PlanStatus.NOTHING_TO_PURGE

    def test_maximum_window(self, memory_repository):
        target = D - timedelta(weeks=53)
        repository = memory_repository(backups=week_unit(target))

        plan = RetentionPlanner(repository).plan(D, weeks_to_keep=52)

        assert plan.status is PlanStatus.READY
        assert plan.target_full_date == target

    def test_log_paths_only_for_existing_logs(self, memory_repository):
        target = D - timedelta(days=14)
        repository = memory_repository(
            backups=week_unit(target),
            logs=[target, target + timedelta(days=1)]
        )

        plan = RetentionPlanner(repository).plan(D, weeks_to_keep=1)

        assert plan.targets[0].log_path == Path('/backups/innobackupex_20240104.log')
        assert plan.targets[1].log_path == Path('/backups/innobackupex_20240105.log')
        assert all(t.log_path is None for t in plan.targets[2:])
        assert plan.targets[0].data_path == Path('/backups/20240104_full')
        assert plan.targets[1].data_path == Path('/backups/20240105_incr')

    def test_planning_is_idempotent(self, memory_repository):
        target = D - timedelta(days=14)
        repository = memory_repository(backups=week_unit(target), logs=[target])
        planner = RetentionPlanner(repository)

        assert planner.plan(D, 1) == planner.plan(D, 1)

    def test_planning_does_not_delete(self, memory_repository):
        target = D - timedelta(days=14)
        repository = memory_repository(backups=week_unit(target))

        RetentionPlanner(repository).plan(D, weeks_to_keep=1)

        assert repository.removed == []
        assert len(repository.backups) == 7


class TestPurge:
    """Test best-effort purge of a plan."""

    def test_purge_deletes_directories_then_logs(self, memory_repository, notifier):
        target = D - timedelta(days=14)
        repository = memory_repository(backups=week_unit(target), logs=[target])
        plan = RetentionPlanner(repository).plan(D, 1)

        report = purge(repository, plan, notifier=notifier)

        assert report.succeeded
        assert len(report.deleted) == 8
        assert repository.removed[:7] == [t.data_path for t in plan.targets]
        assert repository.removed[7] == Path('/backups/innobackupex_20240104.log')
        assert repository.backups == set()
        assert notifier.messages == []

    def test_purge_continues_after_item_failure(self, memory_repository, notifier):
        target = D - timedelta(days=14)
        failing = Path('/backups/20240106_incr')
        repository = memory_repository(
            backups=week_unit(target),
            logs=[target],
            failing_paths=[failing, '/backups/innobackupex_20240104.log']
        )
        plan = RetentionPlanner(repository).plan(D, 1)

        report = purge(repository, plan, notifier=notifier)

        assert not report.succeeded
        assert [f.path for f in report.failures] == [
            failing, Path('/backups/innobackupex_20240104.log')
        ]
        assert len(report.deleted) == 6
        assert failing not in repository.removed
        assert [m.severity for m in notifier.messages] == ['warn', 'warn']
        assert 'Failed to delete /backups/20240106_incr' in notifier.messages[0].text

    @pytest.mark.parametrize("status_backups", ['warmup', 'incomplete'])
    def test_purge_ignores_plans_that_are_not_ready(self, memory_repository, status_backups):
        target = D - timedelta(days=14)
        if status_backups == 'warmup':
            backups = []
        else:
            backups = week_unit(target)[:-1]
        repository = memory_repository(backups=backups)
        plan = RetentionPlanner(repository).plan(D, 1)

        report = purge(repository, plan)

        assert report.deleted == []
        assert report.failures == []
        assert repository.removed == []
