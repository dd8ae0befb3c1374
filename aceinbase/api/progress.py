from fastapi import APIRouter
from aceinbase.models.schemas import ClearProgressResponse, ProgressResponse, ProgressSummary
from aceinbase.models.enums import Subject
from aceinbase.core.errors import PersistenceError
from aceinbase.core.progress_store import ProgressStore, empty_progress, summarize_attempts
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

progress_store: ProgressStore = None

def set_dependencies(ps: ProgressStore):
    global progress_store
    progress_store = ps

def _load_progress():
    try:
        return progress_store.get_progress()
    except PersistenceError as e:
        logger.error(f"Showing empty progress: {e}")
        return empty_progress()

@router.get("/progress", response_model=ProgressResponse)
async def get_progress():
    """
    Quiz history for every subject, oldest attempt first.

    Storage failures degrade to the empty history instead of an error.
    """
    return ProgressResponse(progress=_load_progress())

@router.get("/progress/{subject}/summary", response_model=ProgressSummary)
async def get_progress_summary(subject: Subject):
    """Dashboard figures (quizzes taken, average score, chart points) for one subject."""
    return summarize_attempts(subject, _load_progress()[subject])

@router.delete("/progress", response_model=ClearProgressResponse)
async def clear_progress():
    try:
        progress_store.clear_progress()
    except PersistenceError as e:
        logger.error(f"Error clearing progress: {e}")
        return ClearProgressResponse(cleared=False)
    return ClearProgressResponse(cleared=True)
