"""
Unit Tests for Task Command Parser

Tests free-text command parsing and structured overrides.
"""

import pytest
import sys
import os
from datetime import datetime

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "learnverse_tutor", "src"))

from learnverse_tutor.config import DBE_EXAMS_URL
from learnverse_tutor.task_parser import (
    DBE_URL,
    EXAM_PAPERS,
    IEB_URL,
    SEARCH_RESOURCES,
    TaskParams,
    parse_task_command,
)


class TestParseTaskCommand:

    def test_grade_12_mathematics(self):
        params = parse_task_command("download past papers for grade 12 mathematics")

        assert params.task_type == EXAM_PAPERS
        assert params.grade == "12"
        assert params.subject == "mathematics"
        assert params.year is None
        assert params.website == DBE_EXAMS_URL
        assert params.custom_query == "download past papers for grade 12 mathematics"

    def test_year_and_subject(self):
        params = parse_task_command("download exam papers 2023 English")

        assert params.task_type == EXAM_PAPERS
        assert params.year == "2023"
        assert params.subject == "english"

    def test_search_resources(self):
        params = parse_task_command("search for mathematics resources")

        assert params.task_type == SEARCH_RESOURCES
        assert params.subject == "mathematics"

    def test_search_with_paper_wording_stays_exam_papers(self):
        params = parse_task_command("find past papers and resources for history")
        assert params.task_type == EXAM_PAPERS

    def test_longest_subject_wins(self):
        assert parse_task_command("grade 11 life science papers").subject == "life science"
        assert parse_task_command("grade 10 physical science 2022").subject == "physical science"

    def test_grade_without_space(self):
        assert parse_task_command("Grade10 accounting").grade == "10"

    def test_unsupported_grade_ignored(self):
        assert parse_task_command("grade 9 maths").grade is None

    def test_board_websites(self):
        assert parse_task_command("dbe grade 12 maths").website == DBE_URL
        assert parse_task_command("Independent Examinations Board history").website == IEB_URL

    def test_custom_default_website(self):
        params = parse_task_command("grade 12 maths", default_website="https://papers.example.org")
        assert params.website == "https://papers.example.org"


class TestTaskParamsOverrides:

    def test_defaults_applied(self):
        params = TaskParams.from_overrides(task_type=EXAM_PAPERS, grade="11", subject="history")

        assert params.website == DBE_EXAMS_URL
        assert params.year == str(datetime.now().year)
        assert params.grade == "11"

    def test_explicit_values_kept(self):
        params = TaskParams.from_overrides(
            task_type=SEARCH_RESOURCES,
            subject="geography",
            year="2020",
            website="https://www.ieb.co.za",
            custom_query="maps",
        )

        assert params.to_dict() == {
            "website": "https://www.ieb.co.za",
            "taskType": SEARCH_RESOURCES,
            "grade": None,
            "subject": "geography",
            "year": "2020",
            "customQuery": "maps",
        }
