"""Unit tests for the attendance sufficiency calculator."""

import pytest

from src.attendance.calculator import (
    UNREACHABLE,
    AttendanceCalculator,
    calculate_percentage,
    is_meeting_requirement,
)

pytestmark = pytest.mark.unit


class TestCurrentPercentage:
    """Tests for current_percentage()."""

    @pytest.mark.parametrize(
        "total,attended",
        [(1, 0), (1, 1), (3, 1), (7, 5), (20, 14), (27, 21), (101, 100)],
    )
    def test_matches_ratio(self, total, attended):
        calc = AttendanceCalculator(total, attended)
        assert calc.current_percentage() == pytest.approx(attended / total * 100, abs=1e-9)

    @pytest.mark.parametrize("attended", [0, 5, 50])
    def test_zero_total_is_zero(self, attended):
        """Nothing conducted means 0%, whatever attended says."""
        assert AttendanceCalculator(0, attended).current_percentage() == 0

    def test_module_helpers(self):
        assert calculate_percentage(0, 0) == 0.0
        assert calculate_percentage(4, 3) == 75.0
        assert is_meeting_requirement(75.0)
        assert not is_meeting_requirement(74.99)
        assert is_meeting_requirement(60.0, required=60)

    def test_static_aliases(self):
        assert AttendanceCalculator.calculate_percentage(10, 5) == 50.0
        assert AttendanceCalculator.is_meeting_requirement(80.0, 75.0)


class TestClassesNeedToAttend:
    """Tests for the forward simulation of attended classes."""

    def test_seventy_percent_needs_exactly_four(self):
        """14 of 20 at 75% required: 18/24 is the first sufficient state."""
        calc = AttendanceCalculator(20, 14, 75)
        assert not calc.is_sufficient()
        assert calc.classes_need_to_attend() == 4

    def test_zero_when_sufficient(self):
        assert AttendanceCalculator(20, 18, 75).classes_need_to_attend() == 0

    @pytest.mark.parametrize(
        "total,attended,required",
        [(20, 14, 75), (10, 0, 75), (50, 30, 80), (7, 1, 60), (1, 0, 99)],
    )
    def test_simulation_boundary(self, total, attended, required):
        """k attended classes reach the requirement; k - 1 do not."""
        k = AttendanceCalculator(total, attended, required).classes_need_to_attend()
        assert k is not None and k > 0
        assert calculate_percentage(total + k, attended + k) >= required
        assert calculate_percentage(total + k - 1, attended + k - 1) < required

    @pytest.mark.parametrize("total,attended", [(20, 14), (10, 10), (5, 0)])
    def test_unreachable_above_hundred(self, total, attended):
        calc = AttendanceCalculator(total, attended, required_percentage=101)
        assert calc.classes_need_to_attend() is None
        assert calc.classes_need_to_attend_or_sentinel() == UNREACHABLE == -1

    def test_iteration_cap_is_configurable(self):
        """A tiny cap makes an otherwise reachable target unreachable."""
        calc = AttendanceCalculator(100, 0, 75, max_iterations=10)
        assert calc.classes_need_to_attend() is None

    def test_simulate_alias(self):
        calc = AttendanceCalculator(20, 14, 75)
        assert calc.simulate_classes_need_to_attend() == calc.classes_need_to_attend()


class TestClassesCanMiss:
    """Tests for the forward simulation of missed classes."""

    def test_ninety_percent_can_miss_exactly_four(self):
        """18 of 20 at 75%: 18/24 is still 75%, 18/25 drops below."""
        calc = AttendanceCalculator(20, 18, 75)
        assert calc.is_sufficient()
        assert calc.classes_can_miss() == 4

    def test_zero_when_insufficient(self):
        assert AttendanceCalculator(20, 14, 75).classes_can_miss() == 0

    @pytest.mark.parametrize(
        "total,attended,required",
        [(20, 18, 75), (4, 3, 75), (40, 40, 75), (27, 21, 75), (10, 9, 60)],
    )
    def test_simulation_boundary(self, total, attended, required):
        """m missed classes keep the requirement; m + 1 break it."""
        m = AttendanceCalculator(total, attended, required).classes_can_miss()
        assert m >= 0
        assert calculate_percentage(total + m, attended) >= required
        assert calculate_percentage(total + m + 1, attended) < required

    def test_exactly_at_requirement(self):
        """3 of 4 is exactly 75%; missing one more drops below."""
        assert AttendanceCalculator(4, 3, 75).classes_can_miss() == 0

    def test_zero_requirement_stops_at_cap(self):
        calc = AttendanceCalculator(10, 5, 0, max_iterations=50)
        assert calc.classes_can_miss() == 50

    def test_simulate_alias(self):
        calc = AttendanceCalculator(20, 18, 75)
        assert calc.simulate_classes_can_miss() == calc.classes_can_miss()


class TestClosedForm:
    """Closed-form display approximations stay separate from the simulation."""

    def test_closed_form_can_miss(self):
        # floor((18 - 15) / 0.75) = 4
        assert AttendanceCalculator(20, 18, 75).closed_form_can_miss() == 4

    def test_closed_form_need_to_attend(self):
        # ceil((15 - 14) / 0.25) = 4
        assert AttendanceCalculator(20, 14, 75).closed_form_need_to_attend() == 4

    def test_closed_form_unreachable(self):
        assert AttendanceCalculator(20, 14, 100).closed_form_need_to_attend() is None

    def test_closed_form_zero_on_wrong_side(self):
        assert AttendanceCalculator(20, 14, 75).closed_form_can_miss() == 0
        assert AttendanceCalculator(20, 18, 75).closed_form_need_to_attend() == 0


class TestStatusAndReport:
    """Tests for get_status(), get_report(), projection() and predict()."""

    @pytest.mark.parametrize(
        "total,attended,expected",
        [(100, 75, "Safe"), (100, 90, "Safe"), (100, 70, "Warning"), (100, 72, "Warning"), (100, 69, "Danger")],
    )
    def test_status_uses_five_point_margin(self, total, attended, expected):
        assert AttendanceCalculator(total, attended, 75).get_status() == expected

    def test_status_margin_follows_requirement(self):
        assert AttendanceCalculator(100, 56, 60).get_status() == "Warning"
        assert AttendanceCalculator(100, 54, 60).get_status() == "Danger"

    def test_report_insufficient(self):
        report = AttendanceCalculator(20, 14, 75).get_report()
        assert report.total_classes == 20
        assert report.attended_classes == 14
        assert report.missed_classes == 6
        assert report.current_percentage == 70.0
        assert report.is_sufficient is False
        assert report.status == "Warning"
        assert report.classes_can_miss == 0
        assert report.classes_need_to_attend == 4

    def test_report_is_immutable(self):
        report = AttendanceCalculator(20, 18, 75).get_report()
        with pytest.raises(AttributeError):
            report.status = "Danger"

    def test_projection_sufficient(self):
        projection = AttendanceCalculator(20, 18, 75).projection()
        assert projection.is_sufficient
        assert projection.classes_can_miss == 4
        assert projection.classes_need_to_attend == 0
        assert projection.figure == 4
        assert projection.is_reachable

    def test_projection_unreachable(self):
        projection = AttendanceCalculator(20, 14, 120).projection()
        assert not projection.is_sufficient
        assert projection.classes_need_to_attend is None
        assert projection.figure is None
        assert not projection.is_reachable

    def test_predict(self):
        prediction = AttendanceCalculator(20, 14, 75).predict(future_attended=4, future_missed=0)
        assert prediction.total_classes == 24
        assert prediction.attended_classes == 18
        assert prediction.percentage == 75.0
        assert prediction.is_sufficient

    def test_predict_with_misses(self):
        prediction = AttendanceCalculator(20, 18, 75).predict(future_attended=0, future_missed=5)
        assert prediction.percentage == 72.0
        assert not prediction.is_sufficient
