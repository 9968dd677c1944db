import asyncio

from conftest import book_detail_json, loan_json
from jinlibrary.book_detail import DETAIL_LOAD_FAILED_MESSAGE, BookDetailPage
from jinlibrary.shelf import NO_USER_MESSAGE, LoanShelf, ShelfSection
from jinlibrary.state import ViewStatus
from jinlibrary.workflow import LoanState, OutcomeKind

DETAIL_PATH = "/api/books/test/getBookDetailsById02/9"


def test_book_detail_loads_copies(api, session, backend):
    backend.add("GET", DETAIL_PATH, json_data=book_detail_json(9))
    page = BookDetailPage(api, session, 9)

    assert asyncio.run(page.load()) is True

    assert page.view_state.status is ViewStatus.CONTENT
    assert page.detail.title == "Ulysses"
    assert [copy.unique_code for copy in page.borrowable_copies] == ["BK-001"]


def test_book_detail_failure_shows_generic_message(api, session, backend):
    backend.add("GET", DETAIL_PATH, status_code=404, text="missing")
    page = BookDetailPage(api, session, 9)

    assert asyncio.run(page.load()) is False

    assert page.view_state.status is ViewStatus.ERROR
    assert page.view_state.message == DETAIL_LOAD_FAILED_MESSAGE
    assert page.borrowable_copies == []


def test_confirmed_borrow_replaces_detail_with_server_state(api, signed_in, backend):
    backend.add("GET", DETAIL_PATH, json_data=book_detail_json(9, available=1, total=2))
    backend.add("POST", "/api/loans/borrow", json_data={"success": True, "borrowedBookUniqueCode": "BK-001"})
    page = BookDetailPage(api, signed_in, 9)

    async def scenario():
        await page.load()
        backend.add("GET", DETAIL_PATH, json_data=book_detail_json(9, available=0, total=2))
        page.request_borrow()
        return await page.confirm_borrow()

    outcome = asyncio.run(scenario())

    assert outcome.succeeded
    assert page.detail.available_copies == 0


def test_cancelled_borrow_sends_nothing(api, signed_in, backend):
    page = BookDetailPage(api, signed_in, 9)

    assert page.request_borrow() is LoanState.PENDING_CONFIRMATION
    assert page.cancel_borrow() is True
    assert asyncio.run(page.confirm_borrow()) is None
    assert backend.requests == []


def test_shelf_requires_a_user(api, session, backend):
    shelf = LoanShelf(api, session)

    assert asyncio.run(shelf.load()) is False

    assert shelf.view_state.message == NO_USER_MESSAGE
    assert backend.requests == []


def test_shelf_sections_hit_their_own_endpoints(api, signed_in, backend):
    backend.add("GET", "/api/loans/current/3", json_data=[loan_json(1, "2025-07-01 10:00:00")])
    backend.add("GET", "/api/loans/history/3", json_data=[loan_json(2, "2025-06-01 10:00:00")])
    backend.add("GET", "/api/loans/overdue/3", json_data=[])
    shelf = LoanShelf(api, signed_in)

    async def scenario():
        await shelf.load()
        current = [loan.loan_id for loan in shelf.loans]
        await shelf.select(ShelfSection.HISTORY)
        history = [loan.loan_id for loan in shelf.loans]
        await shelf.select(ShelfSection.OVERDUE)
        overdue = list(shelf.loans)
        # selecting the shown section again does not reload
        reloaded = await shelf.select(ShelfSection.OVERDUE)
        return current, history, overdue, reloaded

    current, history, overdue, reloaded = asyncio.run(scenario())

    assert current == [1]
    assert history == [2]
    assert overdue == []
    assert reloaded is False
    assert len(backend.requests) == 3


def test_profile_section_needs_no_loan_request(api, signed_in, backend):
    shelf = LoanShelf(api, signed_in, ShelfSection.PROFILE)

    assert asyncio.run(shelf.load()) is True
    assert shelf.loans == []
    assert backend.requests == []


def test_shelf_load_failure(api, signed_in, backend):
    backend.add("GET", "/api/loans/current/3", status_code=500, text="boom")
    shelf = LoanShelf(api, signed_in)

    assert asyncio.run(shelf.load()) is False
    assert shelf.view_state.status is ViewStatus.ERROR


def test_return_refreshes_current_loans(api, signed_in, backend):
    backend.add("GET", "/api/loans/current/3", json_data=[loan_json(1, "2025-07-01 10:00:00"),
                                                          loan_json(2, "2025-07-02 10:00:00")])
    backend.add("POST", "/api/loans/return", json_data={"success": True, "returnedBookUniqueCode": "BK-001"})
    shelf = LoanShelf(api, signed_in)

    async def scenario():
        await shelf.load()
        backend.add("GET", "/api/loans/current/3", json_data=[loan_json(2, "2025-07-02 10:00:00")])
        shelf.request_return(1)
        return await shelf.confirm_return()

    outcome = asyncio.run(scenario())

    assert outcome.kind is OutcomeKind.SUCCESS
    assert [loan.loan_id for loan in shelf.loans] == [2]


def test_rejected_return_keeps_list(api, signed_in, backend):
    backend.add("GET", "/api/loans/current/3", json_data=[loan_json(1, "2025-07-01 10:00:00")])
    backend.add("POST", "/api/loans/return", json_data={"success": False, "message": "Already returned"})
    shelf = LoanShelf(api, signed_in)

    async def scenario():
        await shelf.load()
        shelf.request_return(1)
        return await shelf.confirm_return()

    outcome = asyncio.run(scenario())

    assert outcome.kind is OutcomeKind.REJECTED
    assert [loan.loan_id for loan in shelf.loans] == [1]
    assert len(backend.calls("GET", "/api/loans/current/3")) == 1
