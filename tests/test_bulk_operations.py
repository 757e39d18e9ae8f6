"""
Tests for bulk course and student updates.
"""
import pytest

from app.core.exceptions import (
    DuplicateSemesterAssignment,
    InvalidAction,
    NotFound,
    ValidationFailed,
)
from app.services import bulk_operations
from app.services.course_service import get_course_row


class TestBulkCourseActions:

    def test_deactivate_and_activate(self, db, institute, make_course):
        a = make_course(course_code="A1", assigned_semester=1)
        b = make_course(course_code="A2", assigned_semester=2)

        result = bulk_operations.bulk_update_courses(db, institute["id"], [a["id"], b["id"]], "deactivate")
        assert result["affected"] == 2
        assert result["action_message"] == "deactivated"
        assert {c["status"] for c in db.rows("courses")} == {"Inactive"}

        bulk_operations.bulk_update_courses(db, institute["id"], [a["id"]], "activate")
        assert get_course_row(db, institute["id"], a["id"])["status"] == "Active"
        assert get_course_row(db, institute["id"], b["id"])["status"] == "Inactive"

    def test_duplicate_ids_count_once(self, db, institute, make_course):
        a = make_course()
        result = bulk_operations.bulk_update_courses(db, institute["id"], [a["id"], a["id"]], "deactivate")
        assert result["affected"] == 1

    def test_update_semester_credits(self, db, institute, make_course):
        a = make_course()
        result = bulk_operations.bulk_update_courses(db, institute["id"], [a["id"]], "update_semester_credits", "6")
        assert result["action_message"] == "semester credits updated to 6"
        assert get_course_row(db, institute["id"], a["id"])["semester_credits"] == 6
        assert result["value"] == 6

    def test_deactivate_shelves_draft(self, db, institute, make_course):
        """A Draft course can be shelved straight to Inactive"""
        draft = make_course(status="Draft")
        result = bulk_operations.bulk_update_courses(db, institute["id"], [draft["id"]], "deactivate")
        assert result["affected"] == 1
        assert result["value"] is None
        assert get_course_row(db, institute["id"], draft["id"])["status"] == "Inactive"

    @pytest.mark.parametrize("value", [0, 9, "abc", None, True, 2.5])
    def test_invalid_semester_credits(self, db, institute, make_course, value):
        a = make_course()
        with pytest.raises(ValidationFailed):
            bulk_operations.bulk_update_courses(db, institute["id"], [a["id"]], "update_semester_credits", value)
        assert ("courses", "update") not in db.calls

    def test_update_academic_year_requires_value(self, db, institute, make_course):
        a = make_course()
        with pytest.raises(ValidationFailed):
            bulk_operations.bulk_update_courses(db, institute["id"], [a["id"]], "update_academic_year", "  ")

    def test_unknown_action(self, db, institute, make_course):
        a = make_course()
        with pytest.raises(InvalidAction) as exc:
            bulk_operations.bulk_update_courses(db, institute["id"], [a["id"]], "archive")
        assert exc.value.details["supported_actions"] == bulk_operations.COURSE_ACTIONS

    def test_empty_id_list(self, db, institute):
        with pytest.raises(ValidationFailed):
            bulk_operations.bulk_update_courses(db, institute["id"], [], "activate")

    def test_foreign_id_fails_whole_batch(self, db, institute, other_institute, make_course):
        mine = make_course(course_code="A1")
        theirs = make_course(institute_id=other_institute["id"], course_code="B1")

        with pytest.raises(NotFound) as exc:
            bulk_operations.bulk_update_courses(db, institute["id"], [mine["id"], theirs["id"]], "deactivate")
        assert "do not belong to your institute" in exc.value.message
        assert {c["status"] for c in db.rows("courses")} == {"Active"}


class TestBulkDepartmentReassignment:

    def test_conflict_with_outside_course(self, db, institute, make_course):
        """Moving to a department whose slot is taken fails and changes nothing"""
        make_course(course_name="Circuits", course_code="EC101", assigned_department="ECE", assigned_semester=3)
        c1 = make_course(course_code="CS101", assigned_department="CSE", assigned_semester=3)
        c2 = make_course(course_code="CS102", assigned_department="CSE", assigned_semester=4)

        with pytest.raises(DuplicateSemesterAssignment) as exc:
            bulk_operations.bulk_update_courses(
                db, institute["id"], [c1["id"], c2["id"]], "update_assigned_department", "ECE",
            )
        assert exc.value.details["conflicting_course"]["course_name"] == "Circuits"
        assert get_course_row(db, institute["id"], c1["id"])["assigned_department"] == "CSE"
        assert get_course_row(db, institute["id"], c2["id"])["assigned_department"] == "CSE"

    def test_collision_inside_batch(self, db, institute, make_course):
        c1 = make_course(course_code="CS101", assigned_department="CSE", assigned_semester=3)
        c2 = make_course(course_code="ME101", assigned_department="MECH", assigned_semester=3)

        with pytest.raises(DuplicateSemesterAssignment):
            bulk_operations.bulk_update_courses(
                db, institute["id"], [c1["id"], c2["id"]], "update_assigned_department", "ECE",
            )
        assert ("courses", "update") not in db.calls

    def test_successful_move(self, db, institute, make_course):
        c1 = make_course(course_code="CS101", assigned_department="CSE", assigned_semester=3)
        c2 = make_course(course_code="CS102", assigned_department="CSE", assigned_semester=4)

        result = bulk_operations.bulk_update_courses(
            db, institute["id"], [c1["id"], c2["id"]], "update_assigned_department", "ECE",
        )
        assert result["affected"] == 2
        assert {c["assigned_department"] for c in db.rows("courses")} == {"ECE"}

    def test_member_already_in_target_department(self, db, institute, make_course):
        c1 = make_course(course_code="EC101", assigned_department="ECE", assigned_semester=3)
        c2 = make_course(course_code="CS102", assigned_department="CSE", assigned_semester=4)

        result = bulk_operations.bulk_update_courses(
            db, institute["id"], [c1["id"], c2["id"]], "update_assigned_department", "ECE",
        )
        assert result["affected"] == 2


class TestBulkStudentActions:

    def test_verify(self, db, institute, make_student):
        students = [make_student(is_verified=False) for _ in range(3)]
        result = bulk_operations.bulk_update_students(db, institute["id"], [s["id"] for s in students], "verify")
        assert result["affected"] == 3
        assert all(s["is_verified"] for s in db.rows("students"))

    def test_update_semester(self, db, institute, make_student):
        student = make_student(current_semester=1)
        bulk_operations.bulk_update_students(db, institute["id"], [student["id"]], "update_semester", 4)
        assert db.rows("students")[0]["current_semester"] == 4

    def test_update_semester_reports_stored_value(self, db, institute, make_student):
        student = make_student(current_semester=1)
        result = bulk_operations.bulk_update_students(db, institute["id"], [student["id"]], "update_semester", " 6 ")
        assert result["value"] == 6
        assert db.rows("students")[0]["current_semester"] == 6

    def test_update_semester_out_of_range(self, db, institute, make_student):
        student = make_student()
        with pytest.raises(ValidationFailed):
            bulk_operations.bulk_update_students(db, institute["id"], [student["id"]], "update_semester", 9)

    def test_cannot_touch_other_institute(self, db, institute, other_institute, make_student):
        outsider = make_student(institute_id=other_institute["id"], academic_status="Active")
        with pytest.raises(NotFound):
            bulk_operations.bulk_update_students(db, institute["id"], [outsider["id"]], "deactivate")
        assert db.rows("students")[0]["academic_status"] == "Active"

    def test_unknown_action(self, db, institute, make_student):
        student = make_student()
        with pytest.raises(InvalidAction):
            bulk_operations.bulk_update_students(db, institute["id"], [student["id"]], "promote")
