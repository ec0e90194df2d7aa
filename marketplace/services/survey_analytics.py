"""
Per-question analytics over completed survey responses.
"""

import re
from collections import Counter
from statistics import median
from typing import Any, Optional, Sequence

FINNISH_STOPWORDS = frozenset({
    "ja", "tai", "on", "ei", "se", "että", "kun", "niin", "kuin", "vaan",
    "jos", "oli", "olla", "ole", "olen", "olet", "hän", "me", "te", "he",
    "tämä", "tuo", "nämä", "nuo", "ne",
})


def extract_questions(structure: Optional[dict]) -> list[dict]:
    """Flatten {"sections": [{"questions": [...]}]} into a question list."""
    questions = []
    for section in (structure or {}).get("sections") or []:
        questions.extend(section.get("questions") or [])
    return questions


def _scale_value(answer: Any) -> Optional[int]:
    """Whole-number scale answer, or None for anything else (including 3.7)."""
    if isinstance(answer, bool):
        return None
    if isinstance(answer, int):
        return answer
    if isinstance(answer, float):
        return int(answer) if answer.is_integer() else None
    if isinstance(answer, str):
        try:
            return int(answer.strip())
        except ValueError:
            return None
    return None


def analyze_choice_answers(answers: Sequence[Any], options: Optional[Sequence[dict]]) -> dict:
    distribution: dict[str, int] = {}
    labels: dict[str, str] = {}
    for option in options or []:
        distribution[option["value"]] = 0
        labels[option["value"]] = option.get("label", option["value"])

    for answer in answers:
        values = answer if isinstance(answer, list) else [answer]
        for value in values:
            # Objects and nested lists are not option values
            if not isinstance(value, (str, int, float)):
                continue
            distribution[value] = distribution.get(value, 0) + 1

    return {"distribution": distribution, "labels": labels, "total_responses": len(answers)}


def analyze_scale_answers(answers: Sequence[Any], scale: Optional[dict]) -> dict:
    numbers = [n for n in (_scale_value(a) for a in answers) if n is not None]

    if not numbers:
        return {"average": None, "median": None, "distribution": {}, "total_responses": 0}

    scale = scale or {}
    low = 1 if scale.get("min") is None else scale["min"]
    high = 5 if scale.get("max") is None else scale["max"]
    distribution = {i: 0 for i in range(low, high + 1)}
    for value in numbers:
        distribution[value] = distribution.get(value, 0) + 1

    return {
        "average": round(sum(numbers) / len(numbers), 2),
        "median": median(numbers),
        "distribution": distribution,
        "total_responses": len(numbers),
        "scale_info": scale or None,
    }


def common_words(texts: Sequence[str]) -> list[dict]:
    counts: Counter = Counter()
    for text in texts:
        words = re.sub(r"[^\w\s]", " ", text.lower()).split()
        counts.update(w for w in words if len(w) > 2 and w not in FINNISH_STOPWORDS)
    return [{"word": word, "count": count} for word, count in counts.most_common()]


def analyze_text_answers(answers: Sequence[Any]) -> dict:
    texts = [a for a in answers if isinstance(a, str) and a.strip()]
    word_counts = [len(t.split()) for t in texts]
    average = sum(word_counts) / len(word_counts) if word_counts else 0
    return {
        "total_responses": len(texts),
        "average_word_count": round(average, 2),
        "common_themes": common_words(texts)[:10],
        "sample_responses": texts[:5],
    }


def analyze_responses(responses: Sequence[Any], structure: Optional[dict]) -> dict:
    """
    Build the analytics report of a survey template.

    Args:
        responses: SurveyResponse rows (or dicts with completion_status and answers)
        structure: Template questions document

    Returns:
        {"summary", "question_analysis"}
    """
    def field(row, name):
        return row.get(name) if isinstance(row, dict) else getattr(row, name)

    completed = [r for r in responses if field(r, "completion_status") == "completed"]
    questions = extract_questions(structure)

    analysis = []
    for question in questions:
        question_id = question.get("id")
        answers = [
            (field(r, "answers") or {}).get(question_id)
            for r in completed
        ]
        answers = [a for a in answers if a is not None and a != ""]

        entry = {
            "question_id": question_id,
            "question_text": question.get("text"),
            "question_type": question.get("type"),
            "response_count": len(answers),
            "response_rate": len(answers) / len(completed) * 100 if completed else 0,
        }

        question_type = question.get("type")
        if question_type in ("radio", "checkbox"):
            entry["value_distribution"] = analyze_choice_answers(answers, question.get("options"))
        elif question_type == "scale":
            entry["scale_analysis"] = analyze_scale_answers(answers, question.get("scale"))
        elif question_type in ("text", "textarea"):
            entry["text_analysis"] = analyze_text_answers(answers)

        analysis.append(entry)

    return {
        "summary": {
            "total_completed_responses": len(completed),
            "questions_analyzed": len(questions),
        },
        "question_analysis": analysis,
    }
