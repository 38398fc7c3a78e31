# tests/unit/pipeline/test_unit_progress.py - v1
"""Tests for pipeline/progress.py - progress callback dispatch."""

from __future__ import annotations

from visionnarrate.core.models import PipelineStage
from visionnarrate.pipeline.progress import ProgressReporter


class TestProgressReporter:
    def test_invokes_callback(self):
        events = []
        reporter = ProgressReporter(lambda *args: events.append(args))
        reporter.report(PipelineStage.PLANNING, "Planning", 30)
        assert events == [(PipelineStage.PLANNING, "Planning", 30, None)]
        assert reporter.last_stage is PipelineStage.PLANNING
        assert reporter.last_percent == 30

    def test_percent_clamped(self):
        events = []
        reporter = ProgressReporter(lambda *args: events.append(args[2]))
        reporter.report(PipelineStage.GENERATION, "x", 140)
        reporter.report(PipelineStage.GENERATION, "x", -5)
        assert events == [100, 0]

    def test_failing_callback_is_ignored(self):
        def boom(*args):
            raise RuntimeError("listener gone")

        reporter = ProgressReporter(boom)
        reporter.report(PipelineStage.ASSEMBLY, "x", 95)
        assert reporter.last_percent == 95

    def test_no_callback(self):
        ProgressReporter().report(PipelineStage.SUCCESS, "done", 100)
