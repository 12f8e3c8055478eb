"""Unit tests for the curriculum model."""

import pytest
from pydantic import ValidationError

from bootcamp.engines.progress.curriculum import CurriculumModel
from bootcamp.kernel.errors import InvalidCurriculum, InvalidTopicReference
from bootcamp.orchestration.course_service import build_curriculum, slugify


class TestCurriculumModel:
    """Tests for CurriculumModel."""

    def test_from_dicts(self):
        model = CurriculumModel.from_raw([
            {"title": "Foundations", "week": 1, "topics": ["html", "css"], "project": "Landing page"},
        ])
        assert len(model.modules) == 1
        assert model.modules[0].topics == ("html", "css")
        assert model.modules[0].week == 1
        assert model.total_topics == 2

    def test_from_bare_lists(self):
        model = CurriculumModel.from_raw([["a", "b"], ["c"]])
        assert model.total_topics == 3
        assert model.contains(1, "c")

    def test_string_entry_rejected(self):
        with pytest.raises(TypeError):
            CurriculumModel.from_raw(["html"])

    def test_string_topics_in_dict_rejected(self):
        with pytest.raises(ValidationError):
            CurriculumModel.from_raw([{"title": "Foundations", "topics": "html"}])

    def test_none_is_empty(self):
        assert CurriculumModel.from_raw(None).modules == ()

    def test_duplicate_topic_rejected(self):
        with pytest.raises(ValidationError):
            CurriculumModel.from_raw([{"title": "Dup", "topics": ["html", "html"]}])

    def test_same_topic_in_two_modules_allowed(self):
        model = CurriculumModel.from_raw([["review"], ["review"]])
        assert model.contains(0, "review")
        assert model.contains(1, "review")

    def test_require_topic_accepts_known_pair(self):
        model = CurriculumModel.from_raw([["html", "css"]])
        model.require_topic(0, "css")

    @pytest.mark.parametrize("module_index,topic", [(0, "js"), (1, "html"), (-1, "html")])
    def test_require_topic_rejects_unknown(self, module_index, topic):
        model = CurriculumModel.from_raw([["html", "css"]])
        with pytest.raises(InvalidTopicReference) as exc_info:
            model.require_topic(module_index, topic)
        assert exc_info.value.context["topic"] == topic

    def test_to_raw_keeps_order(self):
        raw = [{"title": "B", "topics": ["z", "a"]}, {"title": "A", "topics": ["m"]}]
        dumped = CurriculumModel.from_raw(raw).to_raw()
        assert [m["title"] for m in dumped] == ["B", "A"]
        assert dumped[0]["topics"] == ["z", "a"]


class TestCourseHelpers:
    """Tests for course slug and curriculum helpers."""

    def test_slugify(self):
        assert slugify("Full Stack Web Development!") == "full-stack-web-development"

    def test_build_curriculum_wraps_validation_error(self):
        with pytest.raises(InvalidCurriculum):
            build_curriculum([{"title": "Dup", "topics": ["x", "x"]}])

    @pytest.mark.parametrize(
        "raw",
        [
            ["html"],
            [{"title": "Foundations", "topics": "html"}],
            [42],
            "html",
        ],
    )
    def test_build_curriculum_never_splits_strings(self, raw):
        with pytest.raises(InvalidCurriculum):
            build_curriculum(raw)
