"""View-model for the chat client's friend-request panel.

Holds the fetched page of pending requests and the single request id whose
accept/reject call is in flight. Rendering is left to the caller; this class
only decides which state to show and which buttons are disabled.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable

import httpx

logger = logging.getLogger(__name__)

FRIEND_REQUESTS_PATH = "/api/relations/friend-requests"
HANDLE_FRIEND_REQUEST_PATH = f"{FRIEND_REQUESTS_PATH}/handle"
DEFAULT_PAGE_SIZE = 20


@dataclass(frozen=True)
class Notification:
    title: str
    variant: str = "default"  # default | destructive
    description: str | None = None


def _error_message(exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            detail = exc.response.json().get("detail")
        except ValueError:
            detail = None
        if isinstance(detail, str) and detail:
            return detail
        return f"HTTP {exc.response.status_code}"
    return str(exc) or exc.__class__.__name__


class FriendRequestPanel:
    def __init__(
        self,
        client: httpx.Client,
        notify: Callable[[Notification], None] | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self.client = client
        self.notify = notify or (lambda notification: None)
        self.page_size = page_size
        self.requests: list[dict] = []
        self.total = 0
        self.loaded = False
        self.loading = False
        self.error: str | None = None
        self.processing_id: int | None = None
        self._lock = threading.Lock()

    @property
    def view_state(self) -> str:
        """One of loading, error, empty, populated."""
        # a refetch keeps showing the previous page
        if self.loading and not self.loaded:
            return "loading"
        if self.error:
            return "error"
        if not self.requests:
            return "empty"
        return "populated"

    @property
    def title(self) -> str:
        return f"Friend requests ({self.total})"

    @property
    def has_more(self) -> bool:
        return self.total > self.page_size

    @property
    def can_close(self) -> bool:
        return self.processing_id is None

    def is_processing(self, request_id: int) -> bool:
        return self.processing_id == request_id

    def load(self) -> str:
        self.loading = True
        try:
            response = self.client.get(
                FRIEND_REQUESTS_PATH,
                params={"page": 1, "pageSize": self.page_size},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            self.error = _error_message(exc)
            logger.warning("Failed to load friend requests: %s", self.error)
        else:
            data = response.json()
            self.requests = data["requests"]
            self.total = data["pagination"]["total"]
            self.error = None
            self.loaded = True
        finally:
            self.loading = False
        return self.view_state

    def reload(self) -> str:
        return self.load()

    def accept(self, request_id: int) -> bool:
        return self._handle(request_id, accept=True)

    def reject(self, request_id: int) -> bool:
        return self._handle(request_id, accept=False)

    def _handle(self, request_id: int, accept: bool) -> bool:
        """Submit one decision. Returns False when it failed or was already in flight."""
        with self._lock:
            if self.processing_id == request_id:
                return False
            self.processing_id = request_id

        try:
            response = self.client.post(
                HANDLE_FRIEND_REQUEST_PATH,
                json={"requestId": request_id, "accept": accept},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            self.notify(Notification("Operation failed", "destructive", _error_message(exc)))
            succeeded = False
        else:
            if accept:
                self.notify(Notification("Friend request accepted"))
            else:
                self.notify(Notification("Friend request rejected", "destructive"))
            succeeded = True
        finally:
            with self._lock:
                if self.processing_id == request_id:
                    self.processing_id = None

        self.load()
        return succeeded
