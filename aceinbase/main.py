from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
import logging
from contextlib import asynccontextmanager

from aceinbase.config import Config
from aceinbase.core.llm import GeminiLLMWrapper
from aceinbase.core.progress_store import ProgressStore
from aceinbase.core.review_agent import ReviewAgent
from aceinbase.api import progress, quiz


logging.basicConfig(level=Config.LOG_LEVEL)
logger = logging.getLogger(__name__)


progress_store = None

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize components on startup"""
    global progress_store

    try:
        # Validate configuration
        Config.validate_config()

        # Initialize components
        chat_llm = GeminiLLMWrapper(Config.GEMINI_CHAT_MODEL)
        review_llm = GeminiLLMWrapper(Config.GEMINI_REVIEW_MODEL)
        progress_store = ProgressStore()

        # Set dependencies for routers
        quiz.set_dependencies(chat_llm, ReviewAgent(review_llm), progress_store)
        progress.set_dependencies(progress_store)

        logger.info("Application initialized successfully")

    except Exception as e:
        logger.error(f"Initialization failed: {e}")
        raise e

    yield

    # Cleanup on shutdown
    for controller in quiz.quizzes.values():
        controller.discard()
    quiz.quizzes.clear()
    if progress_store:
        progress_store.close()
    logger.info("Application shutting down")

# Create FastAPI app
app = FastAPI(
    title="AceInBase Quiz API",
    description="Chat-based Maths and Science quizzes with progress tracking",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(quiz.router, prefix="/api", tags=["quiz"])
app.include_router(progress.router, prefix="/api", tags=["progress"])

@app.get("/")
async def root():
    return {"message": "AceInBase Quiz API is running"}

@app.get("/health")
async def health_check():
    return {"status": "healthy", "version": "1.0.0"}

if __name__ == "__main__":
    uvicorn.run(
        "aceinbase.main:app",
        host=Config.HOST,
        port=Config.PORT,
        reload=True
    )
