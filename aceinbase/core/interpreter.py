"""
Parsing of the marker conventions embedded in model replies.

The quiz model signals machine-readable events inside its free text:
``[TOTAL_SCORE: <n>]`` after a correct answer and ``[QUIZ_COMPLETE]`` at the
end of the final summary. Everything that reads those markers lives here so
the rest of the backend only deals with ``InterpretedTurn`` values.
"""
import re
from dataclasses import dataclass
from typing import Iterable, Optional

from aceinbase.models.enums import Role
from aceinbase.models.schemas import Turn
from aceinbase.prompts.quiz_prompts import COMPLETE_MARKER, QUESTION_PREFIX_PATTERN

SCORE_PATTERN = re.compile(r"\[TOTAL_SCORE:\s*(\d+)\]")


@dataclass(frozen=True)
class InterpretedTurn:
    display_text: str
    score_update: Optional[int] = None
    is_terminal: bool = False
    missed_question: Optional[str] = None

    @property
    def is_incorrect(self) -> bool:
        return self.score_update is None and not self.is_terminal


def interpret(raw_text: str, preceding_question: Optional[str] = None) -> InterpretedTurn:
    """
    Classify one model reply and strip its markers.

    Input: raw_text (str), preceding_question (Optional[str]) - the most
    recent question announcement shown to the learner
    Output: InterpretedTurn; ``missed_question`` is set only for an
    incorrect-answer turn that follows a question
    """
    text = raw_text
    score_update = None

    scores = SCORE_PATTERN.findall(text)
    if scores:
        score_update = int(scores[-1])
        text = SCORE_PATTERN.sub("", text)

    is_terminal = COMPLETE_MARKER in text
    if is_terminal:
        text = text.replace(COMPLETE_MARKER, "")

    missed_question = None
    if score_update is None and not is_terminal and preceding_question:
        missed_question = preceding_question

    return InterpretedTurn(
        display_text=text.strip(),
        score_update=score_update,
        is_terminal=is_terminal,
        missed_question=missed_question,
    )


def is_question_turn(text: str) -> bool:
    return bool(QUESTION_PREFIX_PATTERN.match(text))


def find_last_question(transcript: Iterable[Turn]) -> Optional[str]:
    """Most recent model turn that announces a question, or None."""
    for turn in reversed(list(transcript)):
        if turn.role == Role.MODEL and is_question_turn(turn.text):
            return turn.text
    return None
