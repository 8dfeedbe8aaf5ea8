# backend/services/prompts.py
"""Prompt templates sent to the generative model."""

# NOTE: templates use double braces to escape literal JSON in str.format()
QUESTIONS_TPL = """Generate {n} technical interview questions for {position} based on the following:
- Job Description: {description}
- Experience: {experience} years
- Tech Stack: {tech_stack}
Return the result as a JSON array where each item has "question" and "answer" fields.
Example: [{{"question": "What is React?", "answer": "React is a JavaScript library for building user interfaces."}}, ...]
"""

SCORING_TPL = """Question: "{question}"
User Answer: "{user_answer}"
Correct Answer: "{correct_answer}"
Please compare the user's answer to the correct answer, provide a rating (1-10), and give feedback.
Return the result as JSON with "ratings" (number) and "feedback" (string).
"""

PING_PROMPT = "Hello, can you respond?"


def _fmt_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def questions_prompt(position: str, description: str, experience: float, tech_stack: str, n: int = 5) -> str:
    return QUESTIONS_TPL.format(
        n=n,
        position=position,
        description=description,
        experience=_fmt_number(experience),
        tech_stack=tech_stack,
    )


def scoring_prompt(question: str, user_answer: str, correct_answer: str) -> str:
    return SCORING_TPL.format(
        question=question,
        user_answer=user_answer,
        correct_answer=correct_answer,
    )
