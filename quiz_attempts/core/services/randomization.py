"""Service producing the frozen, answer-free question view for an attempt."""

from __future__ import annotations

import random

from quiz_attempts.core.models import FrozenLayout, Question, QuestionOption, QuestionView, Quiz


class RandomizationService:
    """Freezes question/option order once per session and replays it on every read."""

    def __init__(self, seed_source: random.Random | None = None) -> None:
        self._seed_source = seed_source or random.SystemRandom()

    def freeze_layout(self, quiz: Quiz, seed: int | None = None) -> FrozenLayout:
        """Compute the order arrays for a new session.

        ``random.Random.shuffle`` is a Fisher-Yates shuffle, so every
        permutation is equally likely for a given seed source.
        """
        if seed is None:
            seed = self._seed_source.getrandbits(64)
        shuffle_rng = random.Random(seed)

        questions = _base_order(quiz.questions)
        question_order = [question.id for question in questions]
        if quiz.settings.randomize_questions:
            shuffle_rng.shuffle(question_order)

        option_orders: dict[str, list[int]] = {}
        for question in questions:
            indices = list(range(len(question.options)))
            if quiz.settings.randomize_options:
                shuffle_rng.shuffle(indices)
            option_orders[question.id] = indices

        return FrozenLayout(question_order=question_order, option_orders=option_orders, seed=seed)

    def build_view(self, quiz: Quiz, layout: FrozenLayout) -> list[QuestionView]:
        """Replay a stored layout against the quiz's current questions."""
        by_id = {question.id: question for question in quiz.questions}
        views: list[QuestionView] = []
        for question_id in layout.question_order:
            question = by_id.get(question_id)
            if question is None:
                continue
            order = _replay_option_order(layout.option_orders.get(question_id, []), len(question.options))
            views.append(
                QuestionView(
                    id=question.id,
                    type=question.type,
                    prompt=question.prompt,
                    points=question.points,
                    order=question.order,
                    options=[question.options[index].text for index in order],
                    description=question.description,
                    media=dict(question.media),
                    hints=list(question.hints),
                )
            )
        return views


def strip_answers(question: Question) -> Question:
    """Return a copy of ``question`` without any correct-answer data."""
    return Question(
        id=question.id,
        type=question.type,
        prompt=question.prompt,
        options=[QuestionOption(text=option.text, is_correct=None) for option in question.options],
        correct_answer=None,
        correct_answers=[],
        points=question.points,
        order=question.order,
        description=question.description,
        media=dict(question.media),
        hints=list(question.hints),
        explanation=None,
    )


def _base_order(questions: list[Question]) -> list[Question]:
    # sorted() is stable, so equal `order` values keep document order
    return sorted(questions, key=lambda question: question.order)


def _replay_option_order(stored: list[int], option_count: int) -> list[int]:
    order = [index for index in stored if 0 <= index < option_count]
    # options added after the session started go last
    order.extend(index for index in range(option_count) if index not in order)
    return order
