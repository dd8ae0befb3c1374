from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Dict
from datetime import datetime

from aceinbase.models.enums import Subject, Difficulty, Role


class Turn(BaseModel):
    """One chat exchange; immutable once created."""
    model_config = ConfigDict(frozen=True)

    role: Role
    text: str


class QuizAttemptRecord(BaseModel):
    """One completed play-through, appended to the learner's history."""
    model_config = ConfigDict(frozen=True)

    difficulty: Difficulty
    topic: str
    score: int = Field(ge=0)
    completed_at: datetime


class ReviewItem(BaseModel):
    question: str
    explanation: str


class CatalogResponse(BaseModel):
    subjects: List[Subject]
    difficulties: List[Difficulty]
    topics: Dict[Subject, List[str]]


class StartQuizRequest(BaseModel):
    subject: Subject


class DifficultyRequest(BaseModel):
    difficulty: Difficulty


class TopicRequest(BaseModel):
    topic: str


class MessageRequest(BaseModel):
    text: str


class QuizSnapshot(BaseModel):
    quiz_id: str
    subject: Subject
    state: str
    difficulty: Optional[Difficulty] = None
    topic: Optional[str] = None
    topics: List[str] = []
    score: int = 0
    transcript: List[Turn] = []
    mistakes: List[str] = []
    review: List[ReviewItem] = []
    is_loading: bool = False
    available_actions: List[str] = []


class ProgressResponse(BaseModel):
    progress: Dict[Subject, List[QuizAttemptRecord]]


class ProgressPoint(BaseModel):
    label: str
    score: int
    topic: str
    difficulty: Difficulty
    completed_at: datetime


class ProgressSummary(BaseModel):
    """Dashboard figures for one subject"""
    subject: Subject
    quizzes_taken: int
    average_score: int
    points: List[ProgressPoint] = []


class ClearProgressResponse(BaseModel):
    cleared: bool
