import json
from typing import Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from jinlibrary.context import LibraryContext
from jinlibrary.models import UserProfile
from jinlibrary.services.credential_store import CredentialStore
from jinlibrary.services.http_client import LibraryHTTPClient
from jinlibrary.services.library_api import LibraryAPI
from jinlibrary.session import Session, SessionController

BASE_URL = "http://library.test"

Handler = Callable[[httpx.Request], httpx.Response]


class FakeBackend:
    """Routes requests to canned responses and records every request it sees."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Handler] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, status_code: int = 200, json_data=None, text: Optional[str] = None) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if text is not None:
                return httpx.Response(status_code, text=text)
            return httpx.Response(status_code, json=json_data)
        self.routes[(method, path)] = handler

    def add_handler(self, method: str, path: str, handler: Handler) -> None:
        self.routes[(method, path)] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, text=f"no route for {request.method} {request.url.path}")
        return handler(request)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    @staticmethod
    def body(request: httpx.Request):
        return json.loads(request.content)


def book_json(book_id=1, title="Ulysses", available=1, total=2, **extra):
    data = {
        "id": book_id,
        "title": title,
        "author": "James Joyce",
        "category": "Fiction",
        "publishYear": 1922,
        "publisher": "Shakespeare and Company",
        "availableCopies": available,
        "totalCopies": total,
        "imageUrl": None,
    }
    data.update(extra)
    return data


def book_detail_json(book_id=9, title="Ulysses", available=1, total=2):
    data = book_json(book_id, title, available, total)
    data.update({
        "isbn": "9780199535675",
        "description": "A day in Dublin.",
        "bookCopies": [
            {"id": 1, "uniqueCode": "BK-001", "statusDescription": "可借閱", "imageUrl": None},
            {"id": 2, "uniqueCode": "BK-002", "statusDescription": "已借出", "imageUrl": None},
        ],
    })
    return data


def loan_json(loan_id, loan_date, title="Ulysses", return_date=None):
    return {
        "loanId": loan_id,
        "title": title,
        "uniqueCode": f"BK-{loan_id:03d}",
        "loanDate": loan_date,
        "returnDate": return_date,
    }


PROFILE_JSON = {
    "id": 3,
    "name": "Ada Lin",
    "cardId": "C-0003",
    "account": "ada",
    "email": "ada@example.com",
    "phone": None,
    "address": None,
}

LOGIN_JSON = {"jwt": "token-abc", "userId": 3, "role": "MEMBER"}


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def credentials(tmp_path) -> CredentialStore:
    return CredentialStore(tmp_path / "credentials.json")


@pytest.fixture
def http(backend, credentials) -> LibraryHTTPClient:
    return LibraryHTTPClient(credentials, base_url=BASE_URL, transport=httpx.MockTransport(backend))


@pytest.fixture
def api(http) -> LibraryAPI:
    return LibraryAPI(http)


@pytest.fixture
def session(api, credentials) -> SessionController:
    controller = SessionController(api, credentials)
    controller.bootstrap()
    return controller


@pytest.fixture
def logged_in_backend(backend) -> FakeBackend:
    backend.add("POST", "/api/auth/login", json_data=LOGIN_JSON)
    backend.add("GET", "/api/users/3/profile", json_data=PROFILE_JSON)
    return backend


@pytest.fixture
def make_context(backend, credentials):
    def factory() -> LibraryContext:
        return LibraryContext(credentials=credentials, base_url=BASE_URL, transport=httpx.MockTransport(backend))
    return factory


@pytest.fixture
def signed_in(session, credentials, monkeypatch) -> SessionController:
    """A session whose profile is loaded, without going through login."""
    credentials.save("token-abc")
    profile = UserProfile.model_validate(PROFILE_JSON)
    monkeypatch.setattr(session, "_session", Session(token="token-abc", user=profile, user_id=3, role="MEMBER"))
    return session
