"""
Typed calls for each backend route.

Thin layer over ``LibraryHTTPClient``: it picks the endpoint descriptor and the
expected response shape for every operation. All failures surface as the
``ApiError`` subclasses raised by the gateway.
"""

from typing import List, Optional

from jinlibrary.models import (
    Book,
    BookDetail,
    BorrowRequest,
    BorrowResponse,
    Category,
    Loan,
    LoginRequest,
    LoginResponse,
    RegistrationRequest,
    RegistrationResponse,
    ReturnRequest,
    ReturnResponse,
    UserProfile,
)
from jinlibrary.services import endpoints
from jinlibrary.services.http_client import LibraryHTTPClient


class LibraryAPI:
    def __init__(self, http: LibraryHTTPClient) -> None:
        self.http = http

    # ---- auth
    async def login(self, request: LoginRequest) -> LoginResponse:
        return await self.http.perform(endpoints.login(), LoginResponse, body=request)

    async def register(self, request: RegistrationRequest) -> RegistrationResponse:
        return await self.http.perform(endpoints.register(), RegistrationResponse, body=request)

    # ---- catalog
    async def fetch_categories(self) -> List[Category]:
        return await self.http.perform(endpoints.categories(), List[Category])

    async def fetch_books(self, category_id: Optional[int] = None, search_term: Optional[str] = None) -> List[Book]:
        return await self.http.perform(endpoints.books(category_id, search_term), List[Book])

    async def fetch_book_details(self, book_id: int) -> BookDetail:
        return await self.http.perform(endpoints.book_details(book_id), BookDetail)

    # ---- users
    async def fetch_user_profile(self, user_id: int) -> UserProfile:
        return await self.http.perform(endpoints.user_profile(user_id), UserProfile)

    # ---- loans
    async def fetch_current_loans(self, user_id: int) -> List[Loan]:
        return await self.http.perform(endpoints.current_loans(user_id), List[Loan])

    async def fetch_loan_history(self, user_id: int) -> List[Loan]:
        return await self.http.perform(endpoints.loan_history(user_id), List[Loan])

    async def fetch_overdue_loans(self, user_id: int) -> List[Loan]:
        return await self.http.perform(endpoints.overdue_loans(user_id), List[Loan])

    async def borrow_book(self, request: BorrowRequest) -> BorrowResponse:
        return await self.http.perform(endpoints.borrow(), BorrowResponse, body=request)

    async def return_book(self, request: ReturnRequest) -> ReturnResponse:
        return await self.http.perform(endpoints.return_book(), ReturnResponse, body=request)
