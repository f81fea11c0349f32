from __future__ import annotations

from formdoc.domain.models import AnswerPair, FormattingPolicy, SubmissionRecord
from formdoc.domain.text import safe_text


def format_answers(record: SubmissionRecord, policy: FormattingPolicy) -> list[AnswerPair]:
    """Ordered (label, displayed answer) pairs for the Q&A section.

    Order follows the record's own key order. Multi-valued answers (checkbox
    questions) are joined with ", " after dropping blank values.
    """
    pairs: list[AnswerPair] = []
    for label, raw_values in record.items():
        if label in policy.excluded_labels:
            continue

        answer = join_answer_values(raw_values)
        if not answer and not policy.include_blank_answers:
            continue

        pairs.append(AnswerPair(label=label, answer=answer or policy.blank_answer_text))
    return pairs


def build_answers_text(record: SubmissionRecord, policy: FormattingPolicy) -> str:
    return "\n".join(f"{pair.label}: {pair.answer}" for pair in format_answers(record, policy))


def join_answer_values(raw_values: object) -> str:
    if raw_values is None:
        return ""
    if isinstance(raw_values, str):
        raw_values = [raw_values]
    values = [safe_text(value).strip() for value in raw_values]  # type: ignore[union-attr]
    return ", ".join(value for value in values if value).strip()
