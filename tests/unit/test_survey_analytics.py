"""
Unit tests for survey response analytics.
"""

import pytest

from marketplace.services.survey_analytics import (
    analyze_choice_answers,
    analyze_responses,
    analyze_scale_answers,
    analyze_text_answers,
    extract_questions,
)

pytestmark = pytest.mark.unit

STRUCTURE = {
    "sections": [
        {
            "title": "Kokemus",
            "questions": [
                {"id": "nps", "type": "scale", "text": "Suosittelisitko?", "scale": {"min": 0, "max": 10}},
                {"id": "goal", "type": "radio", "text": "Tavoite?",
                 "options": [{"value": "sell", "label": "Myynti"}, {"value": "finance", "label": "Rahoitus"}]},
            ],
        },
        {
            "title": "Palaute",
            "questions": [{"id": "feedback", "type": "text", "text": "Vapaa palaute"}],
        },
    ]
}


class TestExtractQuestions:

    def test_flattens_sections(self):
        assert [q["id"] for q in extract_questions(STRUCTURE)] == ["nps", "goal", "feedback"]

    def test_empty_structure(self):
        assert extract_questions(None) == []
        assert extract_questions({"sections": [{"title": "Empty"}]}) == []


class TestChoiceAnswers:

    def test_distribution_includes_unused_options(self):
        result = analyze_choice_answers(["sell", "sell"], [{"value": "sell"}, {"value": "finance", "label": "Rahoitus"}])

        assert result["distribution"] == {"sell": 2, "finance": 0}
        assert result["labels"] == {"sell": "sell", "finance": "Rahoitus"}

    def test_checkbox_lists(self):
        result = analyze_choice_answers([["a", "b"], ["b"]], None)

        assert result["distribution"] == {"a": 1, "b": 2}
        assert result["total_responses"] == 2

    def test_object_answers_are_skipped(self):
        result = analyze_choice_answers([{"other": "Muu"}, ["a", {"x": 1}], "a"], None)

        assert result["distribution"] == {"a": 2}


class TestScaleAnswers:

    def test_statistics(self):
        result = analyze_scale_answers([8, "10", 9, "n/a"], {"min": 0, "max": 10})

        assert result["average"] == 9.0
        assert result["median"] == 9
        assert result["total_responses"] == 3
        assert result["distribution"][10] == 1
        assert result["distribution"][0] == 0

    def test_fractions_and_booleans_are_not_scale_values(self):
        result = analyze_scale_answers([3.7, True, 4.0, " 2 ", {"value": 5}], {"min": 1, "max": 5})

        assert result["total_responses"] == 2
        assert result["average"] == 3.0
        assert result["distribution"][3] == 0

    def test_no_numeric_answers(self):
        result = analyze_scale_answers(["n/a"], None)

        assert result == {"average": None, "median": None, "distribution": {}, "total_responses": 0}


class TestTextAnswers:

    def test_themes_skip_stopwords_and_short_words(self):
        result = analyze_text_answers([
            "Palvelu oli nopea ja palvelu toimi",
            "Nopea palvelu",
            "   ",
        ])

        assert result["total_responses"] == 2
        assert result["common_themes"][0] == {"word": "palvelu", "count": 3}
        assert {"word": "nopea", "count": 2} in result["common_themes"]
        assert all(theme["word"] not in ("oli", "ja") for theme in result["common_themes"])
        assert result["average_word_count"] == 4.0


class TestAnalyzeResponses:

    def test_only_completed_responses_count(self):
        responses = [
            {"completion_status": "completed", "answers": {"nps": 9, "goal": "sell", "feedback": "Hyvä palvelu"}},
            {"completion_status": "completed", "answers": {"nps": 7, "goal": ""}},
            {"completion_status": "started", "answers": {"nps": 1}},
        ]

        report = analyze_responses(responses, STRUCTURE)

        assert report["summary"] == {"total_completed_responses": 2, "questions_analyzed": 3}
        nps, goal, feedback = report["question_analysis"]
        assert nps["response_rate"] == 100
        assert nps["scale_analysis"]["average"] == 8.0
        assert goal["response_count"] == 1
        assert goal["value_distribution"]["distribution"]["sell"] == 1
        assert feedback["text_analysis"]["total_responses"] == 1

    def test_object_answer_does_not_break_report(self):
        responses = [
            {"completion_status": "completed", "answers": {"goal": {"value": "sell"}}},
            {"completion_status": "completed", "answers": {"goal": "finance"}},
        ]

        report = analyze_responses(responses, STRUCTURE)

        goal = report["question_analysis"][1]
        assert goal["value_distribution"]["distribution"] == {"sell": 0, "finance": 1}

    def test_no_responses(self):
        report = analyze_responses([], STRUCTURE)

        assert report["question_analysis"][0]["response_rate"] == 0
