"""Unit tests for the quiz prompt templates."""

import unittest

from aceinbase.models.enums import Subject, Difficulty
from aceinbase.prompts.quiz_prompts import (
    CONCEPT_BREAK,
    build_opening_message,
    build_review_prompt,
    build_system_prompt,
    strip_question_prefix,
)


class TestSystemPrompt(unittest.TestCase):
    """Test build_system_prompt()."""

    def setUp(self):
        self.prompt = build_system_prompt(Subject.MATHS, Difficulty.MEDIUM, "Algebra")

    def test_values_filled(self):
        self.assertIn("Maths", self.prompt)
        self.assertIn("Medium", self.prompt)
        self.assertIn("Algebra", self.prompt)

    def test_no_placeholders_left(self):
        for placeholder in ("{subject}", "{difficulty}", "{topic}", "{score_marker}", "{complete_marker}"):
            self.assertNotIn(placeholder, self.prompt)

    def test_marker_contract_embedded(self):
        self.assertIn("[TOTAL_SCORE: XX]", self.prompt)
        self.assertIn("[QUIZ_COMPLETE]", self.prompt)
        self.assertIn("Question 1/10:", self.prompt)
        self.assertIn("10 points", self.prompt)

    def test_deterministic(self):
        self.assertEqual(self.prompt, build_system_prompt(Subject.MATHS, Difficulty.MEDIUM, "Algebra"))


class TestOtherPrompts(unittest.TestCase):

    def test_opening_message(self):
        self.assertEqual(
            build_opening_message(Subject.SCIENCE, Difficulty.SIMPLE, "Space"),
            "I'm ready to start the Simple Science quiz on Space.",
        )

    def test_strip_question_prefix(self):
        self.assertEqual(strip_question_prefix("Question 3/10: What is 2+2?"), "What is 2+2?")
        self.assertEqual(strip_question_prefix("What is 2+2?"), "What is 2+2?")

    def test_review_prompt_lists_questions_in_order(self):
        prompt = build_review_prompt(["Question 2/10: Why is the sky blue?", "Question 5/10: What is {x}?"])
        self.assertIn("- Why is the sky blue?\n- What is {x}?", prompt)
        self.assertNotIn("Question 2/10:", prompt)
        self.assertIn(CONCEPT_BREAK, prompt)


if __name__ == "__main__":
    unittest.main()
