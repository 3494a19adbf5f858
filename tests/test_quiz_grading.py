from webinar.services.quiz import (
    QuizQuestion,
    chunk_for_page,
    chunk_pages,
    grade_quiz,
    is_answer_correct,
    is_quiz_boundary,
    normalize_questions,
)


def _single(qid: str = "q1") -> QuizQuestion:
    return QuizQuestion(qid, "Pick one", "single", ("A", "B", "C"), ("A",))


def _multiple(qid: str = "q2") -> QuizQuestion:
    return QuizQuestion(qid, "Pick several", "multiple", ("A", "B", "C", "D"), ("A", "C"))


def test_single_answer_grading() -> None:
    q = _single()
    assert is_answer_correct(["A"], q.correct_answers)
    assert not is_answer_correct(["B"], q.correct_answers)
    assert not is_answer_correct(["A", "B"], q.correct_answers)


def test_multiple_answer_grading_ignores_order() -> None:
    q = _multiple()
    assert is_answer_correct(["C", "A"], q.correct_answers)
    assert is_answer_correct(["A", "C"], q.correct_answers)
    assert not is_answer_correct(["A"], q.correct_answers)
    assert not is_answer_correct([], q.correct_answers)


def test_two_of_three_fails_with_67() -> None:
    questions = [_single("q1"), _multiple("q2"), _single("q3")]
    grade = grade_quiz(questions, {"q1": ["A"], "q2": ["C", "A"], "q3": ["B"]}, pass_score=70)
    assert grade.correct_count == 2
    assert grade.score == 67
    assert grade.passed is False
    assert grade.per_question == {"q1": True, "q2": True, "q3": False}


def test_three_of_three_passes_with_100() -> None:
    questions = [_single("q1"), _multiple("q2"), _single("q3")]
    grade = grade_quiz(questions, {"q1": ["A"], "q2": ["A", "C"], "q3": ["A"]}, pass_score=70)
    assert grade.score == 100
    assert grade.passed is True


def test_score_of_exactly_70_passes() -> None:
    questions = [_single(f"q{i}") for i in range(10)]
    answers = {f"q{i}": ["A"] if i < 7 else ["B"] for i in range(10)}
    grade = grade_quiz(questions, answers, pass_score=70)
    assert grade.score == 70
    assert grade.passed is True


def test_unanswered_questions_grade_as_incorrect() -> None:
    grade = grade_quiz([_single("q1"), _single("q2")], {"q1": ["A"]}, pass_score=70)
    assert grade.score == 50
    assert grade.passed is False


def test_half_scores_round_up() -> None:
    questions = [_single(f"q{i}") for i in range(8)]
    answers = {f"q{i}": ["A"] for i in range(5)}
    assert grade_quiz(questions, answers, pass_score=70).score == 63


def test_chunk_boundaries_with_four_slides_per_quiz() -> None:
    assert chunk_for_page(4, 4) == 1
    assert chunk_pages(1, 4) == [1, 2, 3, 4]
    assert chunk_for_page(5, 4) == 2
    assert chunk_pages(2, 4) == [5, 6, 7, 8]
    assert chunk_for_page(1, 4) == 1
    assert chunk_for_page(8, 4) == 2


def test_quiz_boundary_pages() -> None:
    assert [p for p in range(1, 10) if is_quiz_boundary(p, 3)] == [3, 6, 9]


def test_normalize_drops_questions_breaking_invariants() -> None:
    raw = [
        {"id": "ok1", "question": "Q?", "type": "single", "options": ["A", "B"], "correctAnswers": ["A"]},
        {"id": "ok2", "question": "Q?", "type": "multiple", "options": ["A", "B", "C"], "correctAnswers": ["A", "B"]},
        {"id": "bad1", "question": "Q?", "type": "single", "options": ["A", "B"], "correctAnswers": ["A", "B"]},
        {"id": "bad2", "question": "Q?", "type": "multiple", "options": ["A", "B"], "correctAnswers": ["A"]},
        {"id": "bad3", "question": "Q?", "type": "single", "options": ["A", "B"], "correctAnswers": ["Z"]},
        {"id": "bad4", "question": "Q?", "type": "single", "options": ["A"], "correctAnswers": ["A"]},
        {"id": "bad5", "question": "Q?", "type": "essay", "options": ["A", "B"], "correctAnswers": ["A"]},
        {"id": "ok1", "question": "Dup?", "type": "single", "options": ["A", "B"], "correctAnswers": ["B"]},
    ]
    questions = normalize_questions(raw)
    assert [q.id for q in questions] == ["ok1", "ok2"]
    assert questions[1].correct_answers == ("A", "B")


def test_normalize_drops_items_with_non_string_fields() -> None:
    raw = [
        {"id": "ok", "question": "Q?", "type": "single", "options": ["A", "B"], "correctAnswers": ["A"]},
        {"id": "num_question", "question": 42, "type": "single", "options": ["A", "B"], "correctAnswers": ["A"]},
        {"id": "num_type", "question": "Q?", "type": 1, "options": ["A", "B"], "correctAnswers": ["A"]},
        {"id": "num_options", "question": "Q?", "type": "single", "options": [1, 2], "correctAnswers": [1]},
        {"id": "scalar_options", "question": "Q?", "type": "single", "options": 7, "correctAnswers": ["A"]},
        {"id": 5, "question": "Numbered?", "type": "single", "options": ["A", "B"], "correctAnswers": ["B"]},
    ]
    questions = normalize_questions(raw)
    assert [q.id for q in questions] == ["ok", "5"]
    assert questions[1].correct_answers == ("B",)
