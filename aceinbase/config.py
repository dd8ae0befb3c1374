import os
from dotenv import load_dotenv

from aceinbase.core.errors import InitializationError

load_dotenv()

class Config:
    # API Keys
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")

    # Model Settings
    GEMINI_CHAT_MODEL: str = os.getenv("GEMINI_CHAT_MODEL", "gemini-2.5-pro")
    GEMINI_REVIEW_MODEL: str = os.getenv("GEMINI_REVIEW_MODEL", "gemini-2.5-flash")
    GEMINI_TEMPERATURE: float = float(os.getenv("GEMINI_TEMPERATURE", "0.7"))
    GEMINI_MAX_OUTPUT_TOKENS: int = int(os.getenv("GEMINI_MAX_OUTPUT_TOKENS", "2048"))

    # MongoDB Settings
    MONGODB_URI: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    DATABASE_NAME: str = os.getenv("DATABASE_NAME", "aceinbase")
    PROGRESS_COLLECTION: str = os.getenv("PROGRESS_COLLECTION", "progress")
    PROGRESS_KEY: str = os.getenv("PROGRESS_KEY", "aceinbase_progress")

    # Quiz Settings
    QUESTIONS_PER_QUIZ: int = 10
    POINTS_PER_CORRECT: int = 10
    MAX_ACTIVE_QUIZZES: int = int(os.getenv("MAX_ACTIVE_QUIZZES", "200"))
    QUIZ_IDLE_TIMEOUT_SECONDS: int = int(os.getenv("QUIZ_IDLE_TIMEOUT_SECONDS", "3600"))

    # Server Settings
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    API_BASE_URL: str = os.getenv("API_BASE_URL", "http://localhost:8000/api")

    @classmethod
    def max_score(cls) -> int:
        return cls.QUESTIONS_PER_QUIZ * cls.POINTS_PER_CORRECT

    @classmethod
    def validate_config(cls):
        if not cls.GEMINI_API_KEY:
            raise InitializationError("GEMINI_API_KEY is required")
        if not cls.MONGODB_URI:
            raise InitializationError("MONGODB_URI is required")
