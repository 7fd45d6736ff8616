"""Builders for test items."""

from datetime import date

from retain.domain.models import ReviewableItem, ReviewableKind

TODAY = date(2024, 5, 1)


def make_card(card_id: str, **kwargs) -> ReviewableItem:
    kwargs.setdefault("due_date", TODAY)
    return ReviewableItem(id=card_id, **kwargs)


def make_question(question_id: str, **kwargs) -> ReviewableItem:
    kwargs.setdefault("due_date", TODAY)
    kwargs.setdefault("options", ("a", "b"))
    kwargs.setdefault("correct_option", "a")
    return ReviewableItem(id=question_id, kind=ReviewableKind.QUESTION, **kwargs)
