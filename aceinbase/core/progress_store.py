from pymongo import MongoClient
from pymongo.errors import OperationFailure, PyMongoError
from pydantic import TypeAdapter, ValidationError
from typing import List, Dict, Optional
import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from aceinbase.config import Config
from aceinbase.core.errors import PersistenceError
from aceinbase.models.enums import Subject, Difficulty
from aceinbase.models.schemas import QuizAttemptRecord, ProgressPoint, ProgressSummary

logger = logging.getLogger(__name__)

_ATTEMPT_LIST = TypeAdapter(List[QuizAttemptRecord])


def empty_progress() -> Dict[Subject, List[QuizAttemptRecord]]:
    return {subject: [] for subject in Subject}


class ProgressStore:
    """
    MongoDB-backed quiz history, one document holding every subject.

    The document is keyed by ``Config.PROGRESS_KEY`` and maps each subject
    name to its list of completed attempts. Driver failures surface as
    ``PersistenceError``; malformed stored data is treated as absent.
    """
    def __init__(self, collection=None, key: Optional[str] = None):
        self.client = None
        if collection is None:
            self.client = MongoClient(Config.MONGODB_URI)
            collection = self.client[Config.DATABASE_NAME][Config.PROGRESS_COLLECTION]
        self.collection = collection
        self.key = key or Config.PROGRESS_KEY

    def get_progress(self) -> Dict[Subject, List[QuizAttemptRecord]]:
        """
        Fetch the attempt history for every subject.

        Returns:
            Dict[Subject, List[QuizAttemptRecord]]: oldest attempt first;
            subjects with no (or unreadable) data map to an empty list

        Raises:
            PersistenceError: if the database cannot be read
        """
        try:
            document = self.collection.find_one({"_id": self.key})
        except PyMongoError as e:
            logger.error(f"Error loading progress: {e}")
            raise PersistenceError(f"Failed to load progress: {e}") from e

        progress = empty_progress()
        if not document:
            return progress

        for subject in Subject:
            raw = document.get(subject.value, [])
            try:
                progress[subject] = _ATTEMPT_LIST.validate_python(raw)
            except ValidationError as e:
                logger.warning(f"Ignoring malformed {subject.value} progress: {e.error_count()} error(s)")
        return progress

    def save_quiz_result(
        self,
        subject: Subject,
        difficulty: Difficulty,
        topic: str,
        score: int,
        completed_at: Optional[datetime] = None,
    ) -> QuizAttemptRecord:
        """Append one completed attempt to ``subject``'s history."""
        record = QuizAttemptRecord(
            difficulty=difficulty,
            topic=topic,
            score=score,
            completed_at=completed_at or datetime.now(),
        )
        entry = record.model_dump(mode="python")
        entry["difficulty"] = record.difficulty.value

        try:
            try:
                self.collection.update_one(
                    {"_id": self.key},
                    {"$push": {subject.value: entry}},
                    upsert=True,
                )
            except OperationFailure as e:
                # $push is rejected when the stored field is not a list
                logger.warning(f"Stored progress is malformed, resetting it: {e}")
                self.collection.update_one(
                    {"_id": self.key},
                    {"$set": {subject.value: [entry]}},
                    upsert=True,
                )
        except PyMongoError as e:
            logger.error(f"Error saving progress: {e}")
            raise PersistenceError(f"Failed to save progress: {e}") from e

        logger.info(f"Saved {subject.value} quiz result: {topic} ({difficulty.value}) scored {score}")
        return record

    def clear_progress(self) -> bool:
        try:
            result = self.collection.delete_one({"_id": self.key})
        except PyMongoError as e:
            logger.error(f"Error clearing progress: {e}")
            raise PersistenceError(f"Failed to clear progress: {e}") from e

        logger.info("Cleared all progress")
        return result.deleted_count > 0

    def close(self):
        if self.client:
            self.client.close()


def _round_half_up(total: int, count: int) -> int:
    # halves round up
    return int((Decimal(total) / Decimal(count)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def summarize_attempts(subject: Subject, attempts: List[QuizAttemptRecord]) -> ProgressSummary:
    """
    Dashboard figures for one subject.

    Input: subject (Subject), attempts (List[QuizAttemptRecord]) oldest first
    Output: ProgressSummary with the rounded average and one chart point per attempt
    """
    average = _round_half_up(sum(a.score for a in attempts), len(attempts)) if attempts else 0
    points = [
        ProgressPoint(
            label=f"Quiz #{index + 1}",
            score=attempt.score,
            topic=attempt.topic,
            difficulty=attempt.difficulty,
            completed_at=attempt.completed_at,
        )
        for index, attempt in enumerate(attempts)
    ]
    return ProgressSummary(
        subject=subject,
        quizzes_taken=len(attempts),
        average_score=average,
        points=points,
    )


def score_band(score: int) -> str:
    if score >= 70:
        return "good"
    if score >= 40:
        return "fair"
    return "low"
