"""Tests for the orchestrator phase tracker."""

import pytest

from prfleet_core.orchestrator import PHASES, PhaseTracker


class TestPhaseTracker:
    def test_no_progress_until_first_update(self):
        assert PhaseTracker().snapshot() is None

    def test_first_update_starts_progress(self, clock):
        tracker = PhaseTracker(clock=clock)
        tracker.update("escape_check")
        progress = tracker.snapshot()
        assert progress.current_phase == "escape_check"
        assert progress.started_at == clock.now
        assert len(progress.history) == 1

    def test_any_phase_may_follow_any_phase(self):
        tracker = PhaseTracker()
        for phase in ["build_test", "escape_check", "monitor", "monitor", "poll_wait"]:
            tracker.update(phase)
        progress = tracker.snapshot()
        assert [h.phase for h in progress.history] == ["build_test", "escape_check", "monitor", "monitor", "poll_wait"]
        assert progress.current_phase == "poll_wait"

    def test_detail_replaced_on_each_update(self):
        tracker = PhaseTracker()
        tracker.update("poll_wait", "iteration 1")
        tracker.update("poll_wait")
        progress = tracker.snapshot()
        assert progress.detail is None
        assert progress.history[0].detail == "iteration 1"

    def test_long_detail_is_truncated(self):
        tracker = PhaseTracker(detail_max_chars=20)
        tracker.update("error", "x" * 100)
        detail = tracker.snapshot().detail
        assert len(detail) == 20
        assert detail.endswith("...")

    @pytest.mark.parametrize("phase", ["complete", "error", "aborted"])
    def test_terminal_phases_set_completed_at(self, clock, phase):
        tracker = PhaseTracker(clock=clock)
        tracker.update("monitor")
        clock.advance(5)
        tracker.update(phase)
        assert tracker.snapshot().completed_at == clock.now

    def test_non_terminal_phase_leaves_completed_at_unset(self):
        tracker = PhaseTracker()
        tracker.update("monitor")
        assert tracker.snapshot().completed_at is None

    def test_unknown_phase_raises(self):
        with pytest.raises(ValueError):
            PhaseTracker().update("celebrate")

    def test_snapshot_is_a_copy(self):
        tracker = PhaseTracker()
        tracker.update("label")
        tracker.snapshot().history.clear()
        assert len(tracker.snapshot().history) == 1

    def test_reset(self):
        tracker = PhaseTracker()
        tracker.update("label")
        tracker.reset()
        assert tracker.snapshot() is None

    def test_phase_list_matches_review_loop(self):
        assert PHASES[0] == "escape_check"
        assert {"complete", "error", "aborted"} <= set(PHASES)
