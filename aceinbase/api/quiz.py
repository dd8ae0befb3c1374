from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect
from aceinbase.models.schemas import (
    CatalogResponse,
    DifficultyRequest,
    MessageRequest,
    QuizSnapshot,
    StartQuizRequest,
    TopicRequest,
)
from aceinbase.config import Config
from aceinbase.models.enums import Subject, Difficulty, TOPICS_BY_SUBJECT
from aceinbase.core.errors import InvalidTransitionError, NotInitializedError, QuizBusyError
from aceinbase.core.quiz_flow import QuizFlowController, QuizState
from aceinbase.core.review_agent import ReviewAgent
from aceinbase.core.progress_store import ProgressStore
from typing import Dict
import inspect
import logging
import json

logger = logging.getLogger(__name__)

router = APIRouter()

# Dependencies - set from the application lifespan
chat_llm = None
review_agent: ReviewAgent = None
progress_store: ProgressStore = None

# One controller per play-through, keyed by quiz_id
quizzes: Dict[str, QuizFlowController] = {}

def set_dependencies(llm, ra: ReviewAgent, ps: ProgressStore):
    global chat_llm, review_agent, progress_store
    chat_llm = llm
    review_agent = ra
    progress_store = ps

def _get_quiz(quiz_id: str) -> QuizFlowController:
    controller = quizzes.get(quiz_id)
    if controller is None:
        raise HTTPException(status_code=404, detail="Quiz not found")
    controller.touch()
    return controller

def _drop_quiz(quiz_id: str, reason: str):
    controller = quizzes.pop(quiz_id)
    controller.discard()
    logger.info(f"Evicted quiz {quiz_id} ({reason})")

def _evict_quizzes():
    """
    Make room for one more play-through.

    Quizzes idle for longer than QUIZ_IDLE_TIMEOUT_SECONDS are dropped
    first, then the least recently used ones until below MAX_ACTIVE_QUIZZES.
    """
    for quiz_id, controller in list(quizzes.items()):
        if not controller.is_loading and controller.idle_seconds() > Config.QUIZ_IDLE_TIMEOUT_SECONDS:
            _drop_quiz(quiz_id, "idle")

    overflow = len(quizzes) - Config.MAX_ACTIVE_QUIZZES + 1
    if overflow > 0:
        oldest = sorted(quizzes.values(), key=lambda c: c.last_active)[:overflow]
        for controller in oldest:
            _drop_quiz(controller.quiz_id, "too many active quizzes")

async def _run(controller: QuizFlowController, action, *args) -> QuizSnapshot:
    """
    Apply one controller action and translate quiz errors to HTTP errors.

    Input: controller, action (bound method, sync or async), positional args
    Output: QuizSnapshot after the action
    """
    try:
        result = action(*args)
        if inspect.isawaitable(result):
            await result
    except (InvalidTransitionError, QuizBusyError, NotInitializedError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(f"Error in quiz {controller.quiz_id}: {e}")
        raise HTTPException(status_code=500, detail="Something went wrong with the quiz")
    return controller.snapshot()

@router.get("/catalog", response_model=CatalogResponse)
async def get_catalog():
    """Subjects, difficulty levels and the fixed topic list of each subject."""
    return CatalogResponse(
        subjects=list(Subject),
        difficulties=list(Difficulty),
        topics={subject: list(topics) for subject, topics in TOPICS_BY_SUBJECT.items()},
    )

@router.post("/quiz", response_model=QuizSnapshot)
async def start_quiz(request: StartQuizRequest):
    """
    Start a new play-through for a subject.

    The play-through begins in the difficulty selection state; no call to
    the model is made until a topic is chosen.
    """
    _evict_quizzes()
    controller = QuizFlowController(request.subject, chat_llm, review_agent, progress_store)
    quizzes[controller.quiz_id] = controller
    logger.info(f"Created quiz {controller.quiz_id} for {request.subject.value}")
    return controller.snapshot()

@router.get("/quiz/{quiz_id}", response_model=QuizSnapshot)
async def get_quiz(quiz_id: str):
    return _get_quiz(quiz_id).snapshot()

@router.delete("/quiz/{quiz_id}")
async def discard_quiz(quiz_id: str):
    """Leave a play-through (change subject), releasing its conversation."""
    controller = _get_quiz(quiz_id)
    controller.discard()
    del quizzes[quiz_id]
    return {"discarded": quiz_id}

@router.post("/quiz/{quiz_id}/difficulty", response_model=QuizSnapshot)
async def choose_difficulty(quiz_id: str, request: DifficultyRequest):
    controller = _get_quiz(quiz_id)
    return await _run(controller, controller.choose_difficulty, request.difficulty)

@router.post("/quiz/{quiz_id}/topic", response_model=QuizSnapshot)
async def choose_topic(quiz_id: str, request: TopicRequest):
    """
    Choose the topic and open the conversation with the quiz model.

    Returns the snapshot in the active state with the model's greeting (or
    an apology turn if the model could not be reached).
    """
    controller = _get_quiz(quiz_id)
    return await _run(controller, controller.choose_topic, request.topic)

@router.post("/quiz/{quiz_id}/messages", response_model=QuizSnapshot)
async def send_message(quiz_id: str, request: MessageRequest):
    """
    Submit one learner answer.

    Responds 409 while a previous reply is still pending or when the quiz
    is not active.
    """
    controller = _get_quiz(quiz_id)
    return await _run(controller, controller.submit, request.text)

@router.post("/quiz/{quiz_id}/review", response_model=QuizSnapshot)
async def request_review(quiz_id: str):
    controller = _get_quiz(quiz_id)
    return await _run(controller, controller.request_review)

@router.post("/quiz/{quiz_id}/review/done", response_model=QuizSnapshot)
async def finish_review(quiz_id: str):
    controller = _get_quiz(quiz_id)
    return await _run(controller, controller.finish_review)

@router.post("/quiz/{quiz_id}/play-again", response_model=QuizSnapshot)
async def play_again(quiz_id: str):
    controller = _get_quiz(quiz_id)
    return await _run(controller, controller.play_again)

@router.websocket("/ws/quiz/{quiz_id}")
async def quiz_websocket(websocket: WebSocket, quiz_id: str):
    """
    WebSocket endpoint for the active chat.

    Message Types Sent:
        - "snapshot": quiz state after each learner message
        - "quiz_complete": final score once the quiz finishes
        - "error": request rejected; the connection stays open
    """
    await websocket.accept()

    controller = quizzes.get(quiz_id)
    if controller is None:
        await websocket.send_text(json.dumps({"type": "error", "detail": "Quiz not found"}))
        await websocket.close()
        return

    try:
        while True:
            user_message = await websocket.receive_text()
            logger.info(f"Received message for quiz: {quiz_id}")
            controller.touch()

            try:
                snapshot = await _run(controller, controller.submit, user_message)
            except HTTPException as e:
                await websocket.send_text(json.dumps({"type": "error", "detail": e.detail}))
                continue

            await websocket.send_text(json.dumps({"type": "snapshot", **snapshot.model_dump(mode="json")}))

            if controller.state == QuizState.FINISHED:
                await websocket.send_text(json.dumps({"type": "quiz_complete", "score": controller.score}))

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for quiz: {quiz_id}")
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
        await websocket.close()
