from langchain_core.messages import HumanMessage
from typing import List
import logging

from aceinbase.prompts.quiz_prompts import CONCEPT_BREAK, build_review_prompt

logger = logging.getLogger(__name__)

class ReviewAgent:
    def __init__(self, llm):
        self.llm = llm

    async def get_review(self, mistake_questions: List[str]) -> str:
        """One batched explanation request for every missed question, in order."""
        prompt = build_review_prompt(mistake_questions)
        logger.info(f"Requesting review for {len(mistake_questions)} missed question(s)")
        return await self.llm.generate_response([HumanMessage(content=prompt)])


def split_review(review_text: str) -> List[str]:
    segments = [s.strip() for s in review_text.split(CONCEPT_BREAK)]
    # a trailing delimiter leaves an empty last segment
    while segments and not segments[-1]:
        segments.pop()
    return segments
