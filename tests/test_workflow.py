import asyncio

import pytest

from conftest import FakeBackend, book_detail_json, loan_json
from jinlibrary.errors import NetworkFailure
from jinlibrary.workflow import (
    LoanEvent,
    LoanState,
    LoanWorkflow,
    OutcomeKind,
    next_state,
)

DETAIL_PATH = "/api/books/test/getBookDetailsById02/9"


@pytest.mark.parametrize("state, event, expected", [
    (LoanState.IDLE, LoanEvent.REQUEST, LoanState.PENDING_CONFIRMATION),
    (LoanState.IDLE, LoanEvent.DENY, LoanState.FAILURE),
    (LoanState.IDLE, LoanEvent.CONFIRM, None),
    (LoanState.PENDING_CONFIRMATION, LoanEvent.CANCEL, LoanState.IDLE),
    (LoanState.PENDING_CONFIRMATION, LoanEvent.CONFIRM, LoanState.EXECUTING),
    (LoanState.PENDING_CONFIRMATION, LoanEvent.REQUEST, None),
    (LoanState.EXECUTING, LoanEvent.REQUEST, None),
    (LoanState.EXECUTING, LoanEvent.CANCEL, None),
    (LoanState.EXECUTING, LoanEvent.SUCCEED, LoanState.SUCCESS),
    (LoanState.EXECUTING, LoanEvent.FAIL, LoanState.FAILURE),
    (LoanState.SUCCESS, LoanEvent.REQUEST, LoanState.PENDING_CONFIRMATION),
    (LoanState.FAILURE, LoanEvent.ACKNOWLEDGE, LoanState.IDLE),
])
def test_transition_table(state, event, expected):
    assert next_state(state, event) is expected


def test_borrow_without_user_requires_authentication(api, session, backend):
    workflow = LoanWorkflow(api, session)

    state = workflow.request_borrow(9)

    assert state is LoanState.FAILURE
    assert workflow.outcome.kind is OutcomeKind.AUTH_REQUIRED
    assert workflow.pending is None
    assert workflow.confirmation_prompt is None
    assert asyncio.run(workflow.confirm()) is None
    assert backend.requests == []


def test_request_only_asks_for_confirmation(api, signed_in, backend):
    workflow = LoanWorkflow(api, signed_in)

    assert workflow.request_borrow(9) is LoanState.PENDING_CONFIRMATION
    assert workflow.confirmation_prompt == "Borrow book #9?"
    assert backend.requests == []


def test_successful_borrow_refetches_detail_once_before_success(api, signed_in, backend):
    backend.add("POST", "/api/loans/borrow",
                json_data={"success": True, "borrowedBookUniqueCode": "BK-001", "loanId": 55})
    backend.add("GET", DETAIL_PATH, json_data=book_detail_json(9, available=0, total=2))
    workflow = LoanWorkflow(api, signed_in)
    workflow.request_borrow(9)

    outcome = asyncio.run(workflow.confirm())

    assert workflow.state is LoanState.SUCCESS
    assert outcome.kind is OutcomeKind.SUCCESS
    assert outcome.response.loan_id == 55
    assert outcome.book_detail.available_copies == 0
    assert "BK-001" in outcome.message
    assert len(backend.calls("GET", DETAIL_PATH)) == 1
    # the borrow is issued first, the re-fetch after it
    assert [r.method for r in backend.requests] == ["POST", "GET"]
    borrow = backend.calls("POST", "/api/loans/borrow")[0]
    assert FakeBackend.body(borrow) == {"bookId": 9, "userId": 3}
    assert borrow.headers["Authorization"] == "Bearer token-abc"


def test_business_rejection_fails_without_refetch(api, signed_in, backend):
    backend.add("POST", "/api/loans/borrow", json_data={"success": False, "message": "No copies available"})
    workflow = LoanWorkflow(api, signed_in)
    workflow.request_borrow(9)

    outcome = asyncio.run(workflow.confirm())

    assert workflow.state is LoanState.FAILURE
    assert outcome.kind is OutcomeKind.REJECTED
    assert outcome.message == "No copies available"
    assert outcome.error is None
    assert backend.calls("GET", DETAIL_PATH) == []


def test_transport_failure_keeps_error_for_diagnostics(api, signed_in, monkeypatch):
    async def broken(request):
        raise NetworkFailure("connection reset")

    monkeypatch.setattr(api, "borrow_book", broken)
    workflow = LoanWorkflow(api, signed_in)
    workflow.request_borrow(9)

    outcome = asyncio.run(workflow.confirm())

    assert workflow.state is LoanState.FAILURE
    assert outcome.kind is OutcomeKind.REQUEST_FAILED
    assert isinstance(outcome.error, NetworkFailure)
    assert "connection reset" not in outcome.message


def test_refetch_failure_still_reports_success(api, signed_in, backend):
    backend.add("POST", "/api/loans/borrow", json_data={"success": True, "loanId": 56})
    backend.add("GET", DETAIL_PATH, status_code=500, text="oops")
    workflow = LoanWorkflow(api, signed_in)
    workflow.request_borrow(9)

    outcome = asyncio.run(workflow.confirm())

    assert outcome.succeeded
    assert outcome.book_detail is None
    assert outcome.refresh_error.status_code == 500


def test_cancel_returns_to_idle_without_side_effects(api, signed_in, backend):
    workflow = LoanWorkflow(api, signed_in)
    workflow.request_return(12)

    assert workflow.cancel() is True
    assert workflow.state is LoanState.IDLE
    assert workflow.pending is None
    assert workflow.cancel() is False
    assert backend.requests == []


def test_second_request_while_pending_is_ignored(api, signed_in):
    workflow = LoanWorkflow(api, signed_in)
    workflow.request_borrow(9)

    assert workflow.request_borrow(10) is None
    assert workflow.request_return(12) is None
    assert workflow.pending.target_id == 9


def test_request_while_executing_is_ignored(api, signed_in, monkeypatch):
    workflow = LoanWorkflow(api, signed_in)
    calls = []

    async def scenario():
        gate = asyncio.Event()

        async def slow_borrow(request):
            calls.append(request)
            await gate.wait()
            raise NetworkFailure("late")

        monkeypatch.setattr(api, "borrow_book", slow_borrow)
        workflow.request_borrow(9)
        task = asyncio.create_task(workflow.confirm())
        await asyncio.sleep(0)
        assert workflow.state is LoanState.EXECUTING
        ignored = workflow.request_borrow(9)
        again = await workflow.confirm()
        gate.set()
        await task
        return ignored, again

    ignored, again = asyncio.run(scenario())

    assert ignored is None
    assert again is None
    assert len(calls) == 1


def test_successful_return_refetches_current_loans(api, signed_in, backend):
    backend.add("POST", "/api/loans/return", json_data={"success": True, "returnedBookUniqueCode": "BK-012"})
    backend.add("GET", "/api/loans/current/3", json_data=[loan_json(13, "2025-07-01 10:00:00")])
    workflow = LoanWorkflow(api, signed_in)
    workflow.request_return(12)

    outcome = asyncio.run(workflow.confirm())

    assert outcome.succeeded
    assert [loan.loan_id for loan in outcome.loans] == [13]
    assert FakeBackend.body(backend.calls("POST", "/api/loans/return")[0]) == {"loanId": 12, "userId": 3}
    assert len(backend.calls("GET", "/api/loans/current/3")) == 1


def test_new_transaction_can_start_after_acknowledging(api, signed_in, backend):
    backend.add("POST", "/api/loans/return", json_data={"success": False, "message": "Invalid loan id"})
    workflow = LoanWorkflow(api, signed_in)
    workflow.request_return(99)
    asyncio.run(workflow.confirm())

    assert workflow.acknowledge() is True
    assert workflow.state is LoanState.IDLE
    assert workflow.outcome is None
    assert workflow.request_return(100) is LoanState.PENDING_CONFIRMATION
