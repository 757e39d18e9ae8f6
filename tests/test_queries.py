"""
Tests for listings, filter statistics, dashboard and export.
"""
import csv
import io

import pytest

from app.core.exceptions import ValidationFailed
from app.services import queries


@pytest.fixture
def catalog(make_course):
    return [
        make_course(course_name="Data Structures", course_code="CS201", department="Computer Science",
                    assigned_department="CSE", assigned_semester=3, academic_year="2024-25"),
        make_course(course_name="Operating Systems", course_code="CS301", department="Computer Science",
                    assigned_department="CSE", assigned_semester=5, academic_year="2024-25", status="Inactive"),
        make_course(course_name="Signals", course_code="EC201", department="Electronics",
                    assigned_department="ECE", assigned_semester=3, academic_year="2023-24", status="Draft"),
    ]


class TestListCourses:

    def test_pagination(self, db, institute, catalog):
        page = queries.list_courses(db, institute["id"], page=2, limit=2, sort_by="course_code", sort_order="asc")
        assert [c["course_code"] for c in page["courses"]] == ["EC201"]
        assert page["pagination"] == {"current_page": 2, "total_pages": 2, "total": 3, "has_more": False}

    def test_limit_is_capped(self, db, institute, catalog):
        page = queries.list_courses(db, institute["id"], limit=10_000)
        assert len(page["courses"]) == 3
        assert page["pagination"]["total_pages"] == 1

    def test_search_across_fields(self, db, institute, catalog):
        page = queries.list_courses(db, institute["id"], search="systems")
        assert [c["course_code"] for c in page["courses"]] == ["CS301"]

        page = queries.list_courses(db, institute["id"], search="ece")
        assert [c["course_code"] for c in page["courses"]] == ["EC201"]

    def test_search_strips_filter_syntax(self, db, institute, catalog):
        page = queries.list_courses(db, institute["id"], search="Signals,(*)")
        assert [c["course_code"] for c in page["courses"]] == ["EC201"]

    def test_filters(self, db, institute, catalog):
        page = queries.list_courses(db, institute["id"], assigned_department="cse", assigned_semester=5)
        assert [c["course_code"] for c in page["courses"]] == ["CS301"]

        page = queries.list_courses(db, institute["id"], status="Draft")
        assert [c["course_code"] for c in page["courses"]] == ["EC201"]

    def test_unknown_sort_field(self, db, institute, catalog):
        with pytest.raises(ValidationFailed) as exc:
            queries.list_courses(db, institute["id"], sort_by="password")
        assert "sort_by" in exc.value.errors

    def test_tenant_isolation(self, db, other_institute, catalog):
        page = queries.list_courses(db, other_institute["id"])
        assert page["courses"] == []
        assert page["pagination"]["total"] == 0

    def test_filter_stats(self, db, institute, catalog):
        stats = queries.list_courses(db, institute["id"])["filters"]
        assert stats["available_departments"] == ["Computer Science", "Electronics"]
        assert stats["available_academic_years"] == ["2024-25", "2023-24"]
        assert stats["status_counts"] == {"total": 3, "active": 1, "inactive": 1, "draft": 1}

    def test_subject_count_projection(self, db, institute, catalog):
        db.seed("subjects", institute_id=institute["id"], course_id=catalog[0]["id"], subject_code="S1", semester=3)
        page = queries.list_courses(db, institute["id"], search="CS201")
        assert page["courses"][0]["subject_count"] == 1

    def test_stats_failure_does_not_break_listing(self, db, institute, catalog, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("stats backend down")

        monkeypatch.setattr(queries, "distinct_values", broken)
        page = queries.list_courses(db, institute["id"])
        assert len(page["courses"]) == 3
        assert page["filters"] == queries.EMPTY_COURSE_STATS


class TestStudents:

    @pytest.fixture
    def roster(self, make_course, make_student):
        course = make_course()
        return course, [
            make_student(name="Asha Rao", roll_number="CS001", course_id=course["id"], is_verified=True),
            make_student(name="Vikram Das", roll_number="CS002", course_id=course["id"], is_verified=False),
            make_student(name="Meera Iyer", roll_number="CS003", academic_status="Inactive", is_verified=True),
        ]

    def test_list_hides_password_hashes(self, db, institute, roster):
        page = queries.list_students(db, institute["id"])
        assert page["pagination"]["total"] == 3
        assert all("password_hash" not in s for s in page["students"])

    def test_status_filters(self, db, institute, roster):
        unverified = queries.list_students(db, institute["id"], status="unverified")
        assert [s["roll_number"] for s in unverified["students"]] == ["CS002"]

        inactive = queries.list_students(db, institute["id"], status="inactive")
        assert [s["roll_number"] for s in inactive["students"]] == ["CS003"]

    def test_search(self, db, institute, roster):
        page = queries.list_students(db, institute["id"], search="meera")
        assert [s["roll_number"] for s in page["students"]] == ["CS003"]

    def test_filter_stats(self, db, institute, roster):
        course, _ = roster
        stats = queries.list_students(db, institute["id"])["filters"]
        assert stats["available_courses"] == [{"id": course["id"], "course_name": course["course_name"]}]
        assert stats["status_counts"]["verified"] == 2
        assert stats["status_counts"]["inactive"] == 1

    def test_dashboard(self, db, institute, roster):
        course, _ = roster
        stats = queries.dashboard_stats(db, institute["id"])
        assert stats["total_students"] == 3
        assert stats["verified_students"] == 2
        assert stats["unverified_students"] == 1
        assert stats["recent_registrations"] == 3
        assert stats["verification_rate"] == 67
        assert stats["top_courses"] == [{"course_id": course["id"], "course_name": course["course_name"], "count": 2}]

    def test_csv_export(self, db, institute, roster):
        students = queries.export_students(db, institute["id"])
        rows = list(csv.reader(io.StringIO(queries.students_to_csv(students))))
        assert rows[0] == queries.EXPORT_HEADERS
        assert [r[0] for r in rows[1:]] == ["CS001", "CS002", "CS003"]
        assert rows[1][4] == "Data Structures"
        assert rows[2][8] == "Pending"
