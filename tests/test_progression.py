"""Tests for the progression evaluator."""

import pytest

from conftest import ALL_FLAGS, flags_through
from troubleshooter.assessment.progression import (
    evaluate,
    first_incomplete_step,
    is_assessment_complete,
    progress_summary,
)
from troubleshooter.assessment.state import ALLOW, RedirectTo
from troubleshooter.assessment.steps import STEPS


# --- first_incomplete_step ---------------------------------------------------

def test_first_incomplete_step_for_absent_and_empty_records():
    assert first_incomplete_step(None) == "/user-details"
    assert first_incomplete_step({}) == "/user-details"


@pytest.mark.parametrize("done", range(len(STEPS)))
def test_first_incomplete_step_follows_registry_order(done):
    """Test that the resume point is the first step whose flag is unset."""
    assert first_incomplete_step(flags_through(done)) == STEPS[done].path


def test_first_incomplete_step_all_done_goes_to_dashboard():
    assert first_incomplete_step(flags_through(8)) == "/dashboard"


def test_first_incomplete_step_ignores_out_of_order_completions():
    """Test that later flags never skip an earlier gap."""
    record = flags_through(8)
    record["medicalScreeningCompleted"] = False
    assert first_incomplete_step(record) == "/medical-screen"


def test_falsy_flag_values_count_as_incomplete():
    record = {"userDetailsCompleted": True, "medicalScreeningCompleted": None}
    assert first_incomplete_step(record) == "/medical-screen"


# --- unauthenticated ---------------------------------------------------------

def test_unauthenticated_protected_path_redirects_to_login():
    assert evaluate("/mobility-test", None, False) == RedirectTo("/login")
    assert evaluate("/dashboard", None, False) == RedirectTo("/login")


@pytest.mark.parametrize("path", ["/", "/login", "/signup", "/terms", "/privacy"])
def test_unauthenticated_public_path_is_allowed(path):
    assert evaluate(path, None, False) == ALLOW


# --- scenarios ---------------------------------------------------------------

def test_new_user_requesting_pain_region_starts_at_user_details():
    assert evaluate("/pain-region", None, True) == RedirectTo("/user-details")


def test_new_user_may_open_first_step():
    assert evaluate("/user-details", None, True) == ALLOW


def test_new_user_requesting_dashboard_starts_at_user_details():
    assert evaluate("/dashboard", None, True) == RedirectTo("/user-details")


def test_user_with_three_steps_done_may_open_pain_region():
    record = {
        "userDetailsCompleted": True,
        "medicalScreeningCompleted": True,
        "outcomeMeasureCompleted": True,
    }
    assert evaluate("/pain-region", record, True) == ALLOW


def test_user_with_three_steps_done_is_sent_back_from_nerve_symptoms():
    record = {
        "userDetailsCompleted": True,
        "medicalScreeningCompleted": True,
        "outcomeMeasureCompleted": True,
    }
    assert evaluate("/nerve-symptoms", record, True) == RedirectTo("/pain-region")


# --- gating ------------------------------------------------------------------

@pytest.mark.parametrize("i", range(1, len(STEPS)))
def test_step_with_incomplete_predecessor_is_never_allowed(i):
    """Test that step i with step i-1 incomplete redirects to the resume point."""
    record = flags_through(8)
    record[ALL_FLAGS[i - 1]] = False
    decision = evaluate(STEPS[i].path, record, True)
    assert decision == RedirectTo(first_incomplete_step(record))


@pytest.mark.parametrize("i", range(1, len(STEPS)))
def test_gap_before_predecessor_redirects_to_earliest_gap(i):
    """Test that only the previous step gates, but the redirect targets the first gap."""
    record = flags_through(i)
    record["userDetailsCompleted"] = False
    if i == 1:
        assert evaluate(STEPS[i].path, record, True) == RedirectTo("/user-details")
    else:
        # previous step done: the page itself is reachable
        assert evaluate(STEPS[i].path, record, True) == ALLOW


def test_revisiting_an_earlier_step_is_allowed():
    record = flags_through(5)
    assert evaluate("/medical-screen", record, True) == ALLOW


# --- terminal override -------------------------------------------------------

@pytest.mark.parametrize("step", STEPS, ids=lambda s: s.id.value)
def test_completed_assessment_closes_every_step(step):
    record = {"assessmentCompleted": True}
    assert evaluate(step.path, record, True) == RedirectTo("/dashboard")


@pytest.mark.parametrize("path", ["/dashboard", "/exercise-program", "/account", "/terms"])
def test_completed_assessment_opens_protected_paths(path):
    assert evaluate(path, {"assessmentCompleted": True}, True) == ALLOW


def test_incomplete_user_on_unknown_protected_path_resumes_flow():
    record = flags_through(2)
    assert evaluate("/load-tracking", record, True) == RedirectTo("/outcome-measure")


def test_all_flags_without_terminal_flag_still_reach_dashboard():
    """Test that a record with every step done is not bounced from the dashboard."""
    record = flags_through(8)
    assert is_assessment_complete(record)
    assert evaluate("/dashboard", record, True) == ALLOW


def test_authenticated_user_on_public_path_is_allowed():
    assert evaluate("/terms", {}, True) == ALLOW
    assert evaluate("/", None, True) == ALLOW


# --- summary -----------------------------------------------------------------

def test_progress_summary_counts_completed_steps():
    summary = progress_summary(flags_through(4))
    assert summary.completed_steps == [
        "user-details",
        "medical-screen",
        "outcome-measure",
        "pain-region",
    ]
    assert summary.next_path == "/nerve-symptoms"
    assert summary.percent_complete == 50
    assert summary.assessment_completed is False


def test_progress_summary_for_missing_record():
    summary = progress_summary(None)
    assert summary.completed_steps == []
    assert summary.next_path == "/user-details"
    assert summary.percent_complete == 0
