"""
Unit tests for the quiz flow state machine and controller.

Tests the pure transition function, full play-throughs, mistake tracking,
provider failures, admission control and the review cycle.
"""

import asyncio
import unittest
from unittest.mock import AsyncMock, Mock

from aceinbase.core.errors import InvalidTransitionError, PersistenceError, ProviderError, QuizBusyError
from aceinbase.core.quiz_flow import (
    QuizEvent,
    QuizFlowController,
    QuizState,
    available_events,
    transition,
)
from aceinbase.core.review_agent import ReviewAgent
from aceinbase.models.enums import Subject, Difficulty, Role
from aceinbase.prompts.quiz_prompts import REVIEW_APOLOGY, REVIEW_PLACEHOLDER, START_APOLOGY, TURN_APOLOGY
from tests.fakes import GREETING, quiz_replies, scripted_llm


class TestTransition(unittest.TestCase):
    """Test the pure transition function."""

    def test_happy_path(self):
        state = QuizState.SELECTING_DIFFICULTY
        state = transition(state, QuizEvent.CHOOSE_DIFFICULTY)
        self.assertEqual(state, QuizState.SELECTING_TOPIC)
        state = transition(state, QuizEvent.CHOOSE_TOPIC)
        self.assertEqual(state, QuizState.ACTIVE)
        self.assertEqual(transition(state, QuizEvent.SUBMIT), QuizState.ACTIVE)
        state = transition(state, QuizEvent.COMPLETE)
        self.assertEqual(state, QuizState.FINISHED)
        self.assertEqual(transition(state, QuizEvent.PLAY_AGAIN), QuizState.SELECTING_DIFFICULTY)

    def test_review_requires_mistakes(self):
        self.assertNotIn(QuizEvent.REQUEST_REVIEW, available_events(QuizState.FINISHED, has_mistakes=False))
        with self.assertRaises(InvalidTransitionError):
            transition(QuizState.FINISHED, QuizEvent.REQUEST_REVIEW, has_mistakes=False)

        state = transition(QuizState.FINISHED, QuizEvent.REQUEST_REVIEW, has_mistakes=True)
        self.assertEqual(state, QuizState.REVIEWING)
        self.assertEqual(transition(state, QuizEvent.DONE_REVIEWING), QuizState.FINISHED)

    def test_invalid_pairs_rejected(self):
        with self.assertRaises(InvalidTransitionError):
            transition(QuizState.SELECTING_DIFFICULTY, QuizEvent.SUBMIT)
        with self.assertRaises(InvalidTransitionError):
            transition(QuizState.FINISHED, QuizEvent.SUBMIT)
        with self.assertRaises(InvalidTransitionError):
            transition(QuizState.REVIEWING, QuizEvent.PLAY_AGAIN, has_mistakes=True)
        with self.assertRaises(InvalidTransitionError):
            transition(QuizState.ACTIVE, QuizEvent.REQUEST_REVIEW, has_mistakes=True)


class ControllerTestCase(unittest.IsolatedAsyncioTestCase):

    def make_controller(self, *replies, review_replies=("",)):
        self.chat_llm = scripted_llm(*replies)
        self.review_llm = scripted_llm(*review_replies)
        self.store = Mock()
        return QuizFlowController(Subject.MATHS, self.chat_llm, ReviewAgent(self.review_llm), self.store)

    async def start(self, controller, topic="Algebra"):
        controller.choose_difficulty(Difficulty.MEDIUM)
        await controller.choose_topic(topic)

    async def answer_all(self, controller, count=10):
        for n in range(count):
            await controller.submit(f"answer {n + 1}")


class TestPlayThrough(ControllerTestCase):
    """Full quizzes driven by scripted model replies."""

    async def test_start_opens_session_with_greeting(self):
        controller = self.make_controller(GREETING)
        self.assertEqual(controller.state, QuizState.SELECTING_DIFFICULTY)

        await self.start(controller)

        self.assertEqual(controller.state, QuizState.ACTIVE)
        self.assertEqual(controller.transcript[0].role, Role.MODEL)
        self.assertEqual(controller.transcript[0].text, GREETING)
        messages = self.chat_llm.generate_response.await_args.args[0]
        self.assertIn("Algebra", messages[0].content)
        self.assertEqual(messages[1].content, "I'm ready to start the Medium Maths quiz on Algebra.")

    async def test_all_correct(self):
        controller = self.make_controller(GREETING, *quiz_replies())
        await self.start(controller)
        await self.answer_all(controller)

        self.assertEqual(controller.state, QuizState.FINISHED)
        self.assertEqual(controller.score, 100)
        self.assertEqual(controller.mistakes, [])
        self.store.save_quiz_result.assert_called_once_with(Subject.MATHS, Difficulty.MEDIUM, "Algebra", 100)
        self.assertNotIn("[QUIZ_COMPLETE]", controller.transcript[-1].text)
        self.assertEqual(len(controller.transcript), 21)

    async def test_mistakes_tracked_in_order(self):
        controller = self.make_controller(GREETING, *quiz_replies(wrong={2, 5}))
        await self.start(controller)
        await self.answer_all(controller)

        self.assertEqual(controller.state, QuizState.FINISHED)
        self.assertEqual(controller.score, 80)
        self.assertEqual(controller.mistakes, [
            "Question 2/10: What is 2 + 2?",
            "Question 5/10: What is 5 + 5?",
        ])
        self.store.save_quiz_result.assert_called_once_with(Subject.MATHS, Difficulty.MEDIUM, "Algebra", 80)

    async def test_same_question_missed_twice_recorded_once(self):
        controller = self.make_controller(
            GREETING,
            "Not quite! Have another go.",
            "Still not right, it's 2.",
        )
        await self.start(controller)
        await controller.submit("3")
        await controller.submit("4")

        self.assertEqual(controller.mistakes, [GREETING])

    async def test_score_is_replaced_not_added(self):
        controller = self.make_controller(GREETING, "Question 2/10: Next? [TOTAL_SCORE: 30]")
        await self.start(controller)
        with self.assertLogs("aceinbase.core.quiz_flow", level="WARNING"):
            await controller.submit("2")
        self.assertEqual(controller.score, 30)

    async def test_last_answer_wrong_keeps_previous_score(self):
        controller = self.make_controller(GREETING, *quiz_replies(wrong={10}))
        await self.start(controller)
        await self.answer_all(controller)

        self.assertEqual(controller.state, QuizState.FINISHED)
        self.assertEqual(controller.score, 90)
        self.assertEqual(controller.mistakes, [])
        self.store.save_quiz_result.assert_called_once_with(Subject.MATHS, Difficulty.MEDIUM, "Algebra", 90)

    async def test_quiz_ended_before_any_question(self):
        controller = self.make_controller("Hi!", "All done! [QUIZ_COMPLETE]")
        await self.start(controller)
        with self.assertLogs("aceinbase.core.quiz_flow", level="WARNING") as logs:
            await controller.submit("ok")

        self.assertIn("before asking any question", logs.output[0])
        self.assertEqual(controller.state, QuizState.FINISHED)
        self.assertEqual(controller.mistakes, [])
        self.store.save_quiz_result.assert_called_once_with(Subject.MATHS, Difficulty.MEDIUM, "Algebra", 0)

    async def test_greeting_reply_without_question_records_nothing(self):
        controller = self.make_controller("Hello! Are you ready?", "Question 1/10: What is 1 + 1?")
        await self.start(controller)
        await controller.submit("Yes!")
        self.assertEqual(controller.mistakes, [])

    async def test_blank_submit_ignored(self):
        controller = self.make_controller(GREETING)
        await self.start(controller)
        await controller.submit("   ")
        self.assertEqual(len(controller.transcript), 1)
        self.assertEqual(self.chat_llm.generate_response.await_count, 1)

    async def test_submit_before_topic_rejected(self):
        controller = self.make_controller()
        with self.assertRaises(InvalidTransitionError):
            await controller.submit("hello")

    async def test_unknown_topic_rejected(self):
        controller = self.make_controller(GREETING)
        controller.choose_difficulty(Difficulty.SIMPLE)
        with self.assertRaises(ValueError):
            await controller.choose_topic("Biology")
        self.assertEqual(controller.state, QuizState.SELECTING_TOPIC)

    async def test_no_submit_after_finish(self):
        controller = self.make_controller(GREETING, *quiz_replies())
        await self.start(controller)
        await self.answer_all(controller)
        with self.assertRaises(InvalidTransitionError):
            await controller.submit("one more")
        self.store.save_quiz_result.assert_called_once()

    async def test_play_again_resets_play_through(self):
        controller = self.make_controller(GREETING, *quiz_replies(wrong={3}))
        await self.start(controller)
        await self.answer_all(controller)

        controller.play_again()

        self.assertEqual(controller.state, QuizState.SELECTING_DIFFICULTY)
        self.assertEqual(controller.score, 0)
        self.assertEqual(controller.mistakes, [])
        self.assertEqual(controller.transcript, [])
        self.assertIsNone(controller.difficulty)
        self.assertIsNone(controller.topic)
        self.store.clear_progress.assert_not_called()


class TestFailures(ControllerTestCase):
    """Provider and persistence failures."""

    async def test_provider_failure_mid_quiz(self):
        controller = self.make_controller(
            GREETING,
            "Question 2/10: What is 2 + 2? [TOTAL_SCORE: 10]",
            ProviderError("network down"),
            "Question 3/10: What is 3 + 3? [TOTAL_SCORE: 20]",
        )
        await self.start(controller)
        await controller.submit("2")
        before = len(controller.transcript)

        await controller.submit("4")

        self.assertEqual(controller.state, QuizState.ACTIVE)
        self.assertEqual(controller.score, 10)
        self.assertEqual(controller.mistakes, [])
        self.assertEqual(len(controller.transcript), before + 2)
        self.assertEqual(controller.transcript[-1].role, Role.MODEL)
        self.assertEqual(controller.transcript[-1].text, TURN_APOLOGY)
        self.assertFalse(controller.is_loading)

        # retrying works and the failed exchange is not in the model history
        await controller.submit("4")
        self.assertEqual(controller.score, 20)
        history = self.chat_llm.generate_response.await_args.args[0]
        self.assertEqual([m.content for m in history[1:]].count("4"), 1)

    async def test_start_failure_shows_apology(self):
        controller = self.make_controller(ProviderError("quota"))
        await self.start(controller)
        self.assertEqual(controller.state, QuizState.ACTIVE)
        self.assertEqual([t.text for t in controller.transcript], [START_APOLOGY])

    async def test_persistence_failure_still_finishes(self):
        controller = self.make_controller(GREETING, *quiz_replies())
        self.store.save_quiz_result.side_effect = PersistenceError("db down")
        await self.start(controller)
        await self.answer_all(controller)
        self.assertEqual(controller.state, QuizState.FINISHED)
        self.assertEqual(controller.score, 100)

    async def test_second_call_rejected_while_loading(self):
        release = asyncio.Event()

        async def slow_reply(messages):
            await release.wait()
            return "Question 2/10: Next? [TOTAL_SCORE: 10]"

        controller = self.make_controller(GREETING)
        await self.start(controller)
        self.chat_llm.generate_response = AsyncMock(side_effect=slow_reply)

        pending = asyncio.create_task(controller.submit("2"))
        await asyncio.sleep(0)
        self.assertTrue(controller.is_loading)
        self.assertEqual(controller.snapshot().available_actions, [])

        with self.assertRaises(QuizBusyError):
            await controller.submit("again")

        release.set()
        await pending
        self.assertFalse(controller.is_loading)
        self.assertEqual(controller.score, 10)
        self.assertEqual(self.chat_llm.generate_response.await_count, 1)


class TestReview(ControllerTestCase):
    """The post-quiz review cycle."""

    async def finished_with_mistakes(self, review_reply):
        controller = self.make_controller(GREETING, *quiz_replies(wrong={2, 5}), review_replies=(review_reply,))
        await self.start(controller)
        await self.answer_all(controller)
        return controller

    async def test_review_aligned_with_mistakes(self):
        controller = await self.finished_with_mistakes(
            "Two plus two is four.\n---CONCEPT_BREAK---\nFive plus five is ten."
        )
        self.assertIn("request-review", controller.snapshot().available_actions)

        await controller.request_review()

        self.assertEqual(controller.state, QuizState.REVIEWING)
        self.assertEqual(len(controller.review_explanations), 2)
        items = controller.review_items()
        self.assertEqual(items[0].question, "What is 2 + 2?")
        self.assertEqual(items[0].explanation, "Two plus two is four.")
        self.assertEqual(items[1].question, "What is 5 + 5?")
        self.assertEqual(items[1].explanation, "Five plus five is ten.")

        prompt = self.review_llm.generate_response.await_args.args[0][0].content
        self.assertLess(prompt.index("What is 2 + 2?"), prompt.index("What is 5 + 5?"))

        controller.finish_review()
        self.assertEqual(controller.state, QuizState.FINISHED)

    async def test_missing_segments_use_placeholder(self):
        controller = await self.finished_with_mistakes("Only one explanation came back.")
        await controller.request_review()
        items = controller.review_items()
        self.assertEqual(items[0].explanation, "Only one explanation came back.")
        self.assertEqual(items[1].explanation, REVIEW_PLACEHOLDER)

    async def test_review_failure_shows_apology(self):
        controller = await self.finished_with_mistakes(ProviderError("timeout"))
        await controller.request_review()
        self.assertEqual(controller.review_explanations, [REVIEW_APOLOGY])
        controller.finish_review()
        self.assertEqual(controller.state, QuizState.FINISHED)

    async def test_review_unavailable_without_mistakes(self):
        controller = self.make_controller(GREETING, *quiz_replies())
        await self.start(controller)
        await self.answer_all(controller)

        self.assertNotIn("request-review", controller.snapshot().available_actions)
        with self.assertRaises(InvalidTransitionError):
            await controller.request_review()
        self.review_llm.generate_response.assert_not_awaited()


if __name__ == "__main__":
    unittest.main()
