"""
Endpoint descriptors for every backend route the client uses.

Each descriptor carries its own access capability, so whether a call needs
the bearer credential is decided in one place (the gateway) rather than at
each call site.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class Access(Enum):
    PUBLIC = "public"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class Endpoint:
    method: str
    path: str
    access: Access = Access.PUBLIC
    params: Dict[str, str] = field(default_factory=dict)

    @property
    def requires_auth(self) -> bool:
        return self.access is Access.AUTHENTICATED

    def __str__(self) -> str:
        return f"{self.method} {self.path}"


# Auth
LOGIN_PATH = "/api/auth/login"
REGISTER_PATH = "/api/users/register"

# Catalog
CATEGORIES_PATH = "/api/categories"
BOOKS_PATH = "/api/books/test/getAllBooksWithDetails"
BOOK_DETAILS_PATH = "/api/books/test/getBookDetailsById02"

# Users and loans
USERS_PATH = "/api/users"
LOANS_PATH = "/api/loans"
BORROW_PATH = "/api/loans/borrow"
RETURN_PATH = "/api/loans/return"


def login() -> Endpoint:
    return Endpoint("POST", LOGIN_PATH)


def register() -> Endpoint:
    return Endpoint("POST", REGISTER_PATH)


def categories() -> Endpoint:
    return Endpoint("GET", CATEGORIES_PATH)


def books(category_id: Optional[int] = None, search_term: Optional[str] = None) -> Endpoint:
    """Book list, optionally filtered. A blank search term is left out of the query."""
    params: Dict[str, str] = {}
    if category_id is not None:
        params["categoryId"] = str(category_id)
    if search_term is not None and search_term.strip():
        params["searchTerm"] = search_term
    return Endpoint("GET", BOOKS_PATH, params=params)


def book_details(book_id: int) -> Endpoint:
    return Endpoint("GET", f"{BOOK_DETAILS_PATH}/{book_id}")


def user_profile(user_id: int) -> Endpoint:
    return Endpoint("GET", f"{USERS_PATH}/{user_id}/profile", Access.AUTHENTICATED)


def current_loans(user_id: int) -> Endpoint:
    return Endpoint("GET", f"{LOANS_PATH}/current/{user_id}", Access.AUTHENTICATED)


def loan_history(user_id: int) -> Endpoint:
    return Endpoint("GET", f"{LOANS_PATH}/history/{user_id}", Access.AUTHENTICATED)


def overdue_loans(user_id: int) -> Endpoint:
    return Endpoint("GET", f"{LOANS_PATH}/overdue/{user_id}", Access.AUTHENTICATED)


def borrow() -> Endpoint:
    return Endpoint("POST", BORROW_PATH, Access.AUTHENTICATED)


def return_book() -> Endpoint:
    return Endpoint("POST", RETURN_PATH, Access.AUTHENTICATED)
