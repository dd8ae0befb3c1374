from enum import Enum
from typing import Dict, List, Optional, Set, Tuple
import logging
import time
import uuid

from aceinbase.config import Config
from aceinbase.core.conversation import ConversationSession, open_session
from aceinbase.core.errors import (
    InvalidTransitionError,
    NotInitializedError,
    PersistenceError,
    ProviderError,
    QuizBusyError,
)
from aceinbase.core.interpreter import find_last_question, interpret
from aceinbase.core.review_agent import ReviewAgent, split_review
from aceinbase.models.enums import Subject, Difficulty, Role, topics_for
from aceinbase.models.schemas import QuizSnapshot, ReviewItem, Turn
from aceinbase.prompts.quiz_prompts import (
    REVIEW_APOLOGY,
    REVIEW_PLACEHOLDER,
    START_APOLOGY,
    TURN_APOLOGY,
    build_opening_message,
    strip_question_prefix,
)

logger = logging.getLogger(__name__)


class QuizState(str, Enum):
    SELECTING_DIFFICULTY = "selecting-difficulty"
    SELECTING_TOPIC = "selecting-topic"
    ACTIVE = "active"
    FINISHED = "finished"
    REVIEWING = "reviewing"


class QuizEvent(str, Enum):
    CHOOSE_DIFFICULTY = "choose-difficulty"
    CHOOSE_TOPIC = "choose-topic"
    SUBMIT = "submit"
    COMPLETE = "complete"
    REQUEST_REVIEW = "request-review"
    DONE_REVIEWING = "done-reviewing"
    PLAY_AGAIN = "play-again"


TRANSITIONS: Dict[Tuple[QuizState, QuizEvent], QuizState] = {
    (QuizState.SELECTING_DIFFICULTY, QuizEvent.CHOOSE_DIFFICULTY): QuizState.SELECTING_TOPIC,
    (QuizState.SELECTING_TOPIC, QuizEvent.CHOOSE_TOPIC): QuizState.ACTIVE,
    (QuizState.ACTIVE, QuizEvent.SUBMIT): QuizState.ACTIVE,
    (QuizState.ACTIVE, QuizEvent.COMPLETE): QuizState.FINISHED,
    (QuizState.FINISHED, QuizEvent.REQUEST_REVIEW): QuizState.REVIEWING,
    (QuizState.REVIEWING, QuizEvent.DONE_REVIEWING): QuizState.FINISHED,
    (QuizState.FINISHED, QuizEvent.PLAY_AGAIN): QuizState.SELECTING_DIFFICULTY,
}


def available_events(state: QuizState, has_mistakes: bool = False) -> Set[QuizEvent]:
    events = {event for (source, event) in TRANSITIONS if source == state}
    if not has_mistakes:
        events.discard(QuizEvent.REQUEST_REVIEW)
    return events


def transition(state: QuizState, event: QuizEvent, has_mistakes: bool = False) -> QuizState:
    """
    Next state for ``event`` in ``state``.

    Review is only reachable from a finished quiz with at least one mistake.
    Raises InvalidTransitionError for any other pair.
    """
    if event not in available_events(state, has_mistakes):
        raise InvalidTransitionError(f"Cannot {event.value} while {state.value}")
    return TRANSITIONS[(state, event)]


class QuizFlowController:
    """
    Drives one learner through difficulty and topic selection, the chat quiz,
    and the optional review of missed questions.
    - Exclusively owns the play-through's ConversationSession
    - Admits one provider call at a time; overlapping calls raise QuizBusyError
    - Applies Score, mistakes and transcript changes only after a reply parsed
    """

    def __init__(self, subject: Subject, chat_llm, review_agent: ReviewAgent, progress_store, quiz_id: Optional[str] = None):
        self.quiz_id = quiz_id or str(uuid.uuid4())
        self.subject = subject
        self.chat_llm = chat_llm
        self.review_agent = review_agent
        self.progress_store = progress_store

        self.state = QuizState.SELECTING_DIFFICULTY
        self.difficulty: Optional[Difficulty] = None
        self.topic: Optional[str] = None
        self.transcript: List[Turn] = []
        self.score = 0
        self.mistakes: List[str] = []
        self.review_explanations: List[str] = []
        self.is_loading = False
        self._conversation: Optional[ConversationSession] = None
        self.last_active = time.monotonic()

    @property
    def topics(self) -> List[str]:
        return topics_for(self.subject)

    def touch(self):
        self.last_active = time.monotonic()

    def idle_seconds(self) -> float:
        return time.monotonic() - self.last_active

    def _advance(self, event: QuizEvent):
        self.state = transition(self.state, event, has_mistakes=bool(self.mistakes))

    def _admit(self, event: QuizEvent):
        if self.is_loading:
            raise QuizBusyError("Please wait for the current reply before sending another message.")
        # validates the event without moving yet
        transition(self.state, event, has_mistakes=bool(self.mistakes))

    def _reset_play_through(self):
        self.transcript = []
        self.score = 0
        self.mistakes = []
        self.review_explanations = []

    async def _send(self, text: str) -> str:
        if self._conversation is None:
            raise NotInitializedError("Chat session not started. Choose a topic first.")
        return await self._conversation.send(text)

    def _close_conversation(self):
        if self._conversation:
            self._conversation.close()
            self._conversation = None

    def choose_difficulty(self, difficulty: Difficulty):
        self._admit(QuizEvent.CHOOSE_DIFFICULTY)
        self.difficulty = difficulty
        self._advance(QuizEvent.CHOOSE_DIFFICULTY)

    async def choose_topic(self, topic: str):
        """
        Open the quiz conversation for ``topic`` and fetch the greeting.

        A provider failure still enters the active state, with an apology
        turn; the learner retries by sending a message.
        """
        self._admit(QuizEvent.CHOOSE_TOPIC)
        if topic not in self.topics:
            raise ValueError(f"Unknown {self.subject.value} topic: {topic}")

        self.topic = topic
        self._reset_play_through()
        self._close_conversation()
        self._conversation = open_session(self.chat_llm, self.subject, self.difficulty, topic)
        self._advance(QuizEvent.CHOOSE_TOPIC)

        self.is_loading = True
        try:
            greeting = await self._send(build_opening_message(self.subject, self.difficulty, topic))
            self.transcript = [Turn(role=Role.MODEL, text=greeting.strip())]
        except ProviderError as e:
            logger.error(f"Failed to start quiz {self.quiz_id}: {e}")
            self.transcript = [Turn(role=Role.MODEL, text=START_APOLOGY)]
        finally:
            self.is_loading = False

    async def submit(self, user_text: str):
        """
        Send one learner answer and apply the interpreted reply.

        Input: user_text (str); blank text is ignored
        Output: None (state, score, mistakes and transcript updated)
        """
        if not user_text.strip():
            return
        self._admit(QuizEvent.SUBMIT)

        preceding_question = find_last_question(self.transcript)
        self.transcript.append(Turn(role=Role.USER, text=user_text))

        self.is_loading = True
        try:
            reply = await self._send(user_text)
        except ProviderError as e:
            logger.error(f"Error sending message for quiz {self.quiz_id}: {e}")
            self.transcript.append(Turn(role=Role.MODEL, text=TURN_APOLOGY))
            return
        finally:
            self.is_loading = False

        result = interpret(reply, preceding_question)
        self._check_reported_score(result.score_update, result.is_terminal)

        if result.score_update is not None:
            self.score = result.score_update
        if result.missed_question and result.missed_question not in self.mistakes:
            self.mistakes.append(result.missed_question)
        self.transcript.append(Turn(role=Role.MODEL, text=result.display_text))

        if result.is_terminal:
            if preceding_question is None:
                logger.warning(f"Quiz {self.quiz_id}: model ended the quiz before asking any question")
            self._advance(QuizEvent.COMPLETE)
            self._record_result()

    def _check_reported_score(self, reported: Optional[int], is_terminal: bool):
        if reported is None:
            return
        expected = self.score + Config.POINTS_PER_CORRECT
        # the final summary may repeat the running total
        if reported == self.score and is_terminal:
            return
        if reported != expected:
            logger.warning(
                f"Quiz {self.quiz_id}: model reported total {reported}, expected {expected} after a correct answer"
            )

    def _record_result(self):
        logger.info(f"Quiz {self.quiz_id} finished: {self.subject.value} / {self.topic} scored {self.score}")
        try:
            self.progress_store.save_quiz_result(self.subject, self.difficulty, self.topic, self.score)
        except PersistenceError as e:
            logger.error(f"Could not save result for quiz {self.quiz_id}: {e}")

    async def request_review(self):
        """Fetch one explanation per missed question, in mistake order."""
        self._admit(QuizEvent.REQUEST_REVIEW)
        self._advance(QuizEvent.REQUEST_REVIEW)

        mistakes = list(self.mistakes)
        self.review_explanations = []
        self.is_loading = True
        try:
            review = await self.review_agent.get_review(mistakes)
            self.review_explanations = split_review(review)
            if len(self.review_explanations) < len(mistakes):
                logger.warning(
                    f"Quiz {self.quiz_id}: review has {len(self.review_explanations)} section(s) for {len(mistakes)} mistake(s)"
                )
        except ProviderError as e:
            logger.error(f"Failed to get review for quiz {self.quiz_id}: {e}")
            self.review_explanations = [REVIEW_APOLOGY]
        finally:
            self.is_loading = False

    def finish_review(self):
        self._admit(QuizEvent.DONE_REVIEWING)
        self._advance(QuizEvent.DONE_REVIEWING)

    def play_again(self):
        self._admit(QuizEvent.PLAY_AGAIN)
        self._close_conversation()
        self._reset_play_through()
        self.difficulty = None
        self.topic = None
        self._advance(QuizEvent.PLAY_AGAIN)

    def discard(self):
        self._close_conversation()

    def review_items(self) -> List[ReviewItem]:
        items = []
        for index, question in enumerate(self.mistakes):
            explanation = self.review_explanations[index] if index < len(self.review_explanations) else REVIEW_PLACEHOLDER
            items.append(ReviewItem(question=strip_question_prefix(question), explanation=explanation))
        return items

    def snapshot(self) -> QuizSnapshot:
        actions = [] if self.is_loading else sorted(
            e.value for e in available_events(self.state, has_mistakes=bool(self.mistakes))
            if e != QuizEvent.COMPLETE
        )
        return QuizSnapshot(
            quiz_id=self.quiz_id,
            subject=self.subject,
            state=self.state.value,
            difficulty=self.difficulty,
            topic=self.topic,
            topics=self.topics,
            score=self.score,
            transcript=list(self.transcript),
            mistakes=list(self.mistakes),
            review=self.review_items() if self.state == QuizState.REVIEWING else [],
            is_loading=self.is_loading,
            available_actions=actions,
        )
