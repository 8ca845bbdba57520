"""
Tests for structured-output extraction and record validation.
"""

from orchestrator.extraction import dump_records, extract_json, validate_items
from schemas.career import Job, Match


class TestExtractJson:
    def test_fenced_block(self):
        text = 'Here you go:\n```json\n{"summary": "3 jobs", "jobs": []}\n```\nGood luck!'
        assert extract_json(text) == {"summary": "3 jobs", "jobs": []}

    def test_fence_is_case_insensitive(self):
        assert extract_json('```JSON\n{"a": 1}\n```') == {"a": 1}

    def test_bare_object_in_prose(self):
        text = 'Result: {"summary": "ok", "matches": [{"jobTitle": "X"}]} -- end'
        assert extract_json(text) == {"summary": "ok", "matches": [{"jobTitle": "X"}]}

    def test_invalid_fence_falls_back_to_braces(self):
        text = '```json\nnot json\n```\n{"a": 2}'
        assert extract_json(text) == {"a": 2}

    def test_no_json(self):
        assert extract_json("Plain prose with no object") is None

    def test_malformed_json(self):
        assert extract_json('{"a": 1,,}') is None

    def test_top_level_array_is_rejected(self):
        assert extract_json("[1, 2, 3]") is None

    def test_empty(self):
        assert extract_json("") is None
        assert extract_json(None) is None


class TestValidateItems:
    def test_drops_invalid_entries(self):
        items = validate_items(
            Job,
            [{"title": "A", "company": "X"}, {"title": "", "company": "Y"}, "junk"],
            "market-researcher",
            "jobs",
        )
        assert [job.title for job in items] == ["A"]

    def test_missing_field(self):
        assert validate_items(Job, None, "market-researcher", "jobs") is None

    def test_not_a_list(self):
        assert validate_items(Job, {"title": "A"}, "market-researcher", "jobs") is None

    def test_all_invalid(self):
        assert validate_items(Match, [{"overallScore": 50}], "match-scorer", "matches") is None

    def test_explicit_empty_list(self):
        assert validate_items(Job, [], "market-researcher", "jobs") == []


def test_dump_records_uses_camel_case():
    dumped = dump_records([Job(id="j1", title="A", company="X", salary_min=1)])
    assert dumped[0]["id"] == "j1"
    assert dumped[0]["salaryMin"] == 1
    assert "salary_min" not in dumped[0]
