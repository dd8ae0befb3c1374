import requests
from typing import Any, Dict, Optional

from aceinbase.config import Config


class QuizApiError(Exception):
    def __init__(self, status_code: int, detail: str):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


class QuizApiClient:
    """HTTP client for the quiz backend, one method per route."""

    def __init__(self, base_url: Optional[str] = None, timeout: float = 120.0, session: Optional[requests.Session] = None):
        self.base_url = (base_url or Config.API_BASE_URL).rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = self.session.request(method, f"{self.base_url}{path}", json=json, timeout=self.timeout)
        if response.status_code != 200:
            try:
                detail = response.json().get("detail", "Unknown error")
            except ValueError:
                detail = response.text or "Unknown error"
            raise QuizApiError(response.status_code, str(detail))
        return response.json()

    def get_catalog(self) -> Dict[str, Any]:
        return self._request("GET", "/catalog")

    def start_quiz(self, subject: str) -> Dict[str, Any]:
        return self._request("POST", "/quiz", {"subject": subject})

    def get_quiz(self, quiz_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/quiz/{quiz_id}")

    def discard_quiz(self, quiz_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/quiz/{quiz_id}")

    def choose_difficulty(self, quiz_id: str, difficulty: str) -> Dict[str, Any]:
        return self._request("POST", f"/quiz/{quiz_id}/difficulty", {"difficulty": difficulty})

    def choose_topic(self, quiz_id: str, topic: str) -> Dict[str, Any]:
        return self._request("POST", f"/quiz/{quiz_id}/topic", {"topic": topic})

    def send_message(self, quiz_id: str, text: str) -> Dict[str, Any]:
        return self._request("POST", f"/quiz/{quiz_id}/messages", {"text": text})

    def request_review(self, quiz_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/quiz/{quiz_id}/review")

    def finish_review(self, quiz_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/quiz/{quiz_id}/review/done")

    def play_again(self, quiz_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/quiz/{quiz_id}/play-again")

    def get_progress(self) -> Dict[str, Any]:
        return self._request("GET", "/progress")["progress"]

    def get_progress_summary(self, subject: str) -> Dict[str, Any]:
        return self._request("GET", f"/progress/{subject}/summary")

    def clear_progress(self) -> bool:
        return self._request("DELETE", "/progress")["cleared"]
