"""
Centralized prompts.

Workflow and model clients import their prompt text from here.
"""


DOCUMENT_QA_SYSTEM_PROMPT = """
You are a helpful assistant that answers questions about uploaded PDF documents.
Answer only from the context you are given and never invent information.
""".strip()


QUESTION_ANSWER_TEMPLATE = """You are a helpful assistant that answers questions based on the provided context.

CONTEXT:
{context}

QUESTION: {question}

INSTRUCTIONS:
- Answer the question based only on the information provided in the context above
- If the context doesn't contain enough information to answer the question, say so
- Be concise and accurate
- Cite which document(s) you used if relevant

ANSWER:"""
