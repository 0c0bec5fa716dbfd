# pdfqa/prompts/prompt_builder.py

from typing import Sequence

from pdfqa.memory.document import Document
from pdfqa.prompts.system_prompts import QUESTION_ANSWER_TEMPLATE


def build_context(documents: Sequence[Document]) -> str:
    """Number documents by rank: [Document 1], [Document 2], ..."""

    return "\n\n".join(
        f"[Document {i}]\n{doc.content}"
        for i, doc in enumerate(documents, 1)
    )


def build_prompt(question: str, documents: Sequence[Document]) -> str:
    return QUESTION_ANSWER_TEMPLATE.format(
        context=build_context(documents),
        question=question,
    )
