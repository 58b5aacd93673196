"""
ATM HTTP Front End

FastAPI application standing in for the ATM screens. Each login opens an
ATMSession addressed by a session id; all sessions share one Ledger held
on the application state. An account has at most one open session, and
once max_sessions are open the oldest one is closed to make room.
"""

from typing import Optional
import uuid

from fastapi import FastAPI, HTTPException, Depends, Request, status

from .config import get_config
from .errors import LedgerResult
from .ledger import Ledger
from .logging_config import get_logger
from .schemas import (
    CredentialsRequest, AmountRequest, TransferRequest,
    SessionResponse, OperationResponse, HistoryResponse
)
from .session import ATMSession


logger = get_logger("atm.api")


def get_ledger(request: Request) -> Ledger:
    return request.app.state.ledger


def get_session(session_id: str, request: Request) -> ATMSession:
    session = request.app.state.sessions.get(session_id)
    if session is None or not session.is_authenticated:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _raise_for_result(result: LedgerResult) -> None:
    if not result.ok:
        raise HTTPException(
            status_code=400,
            detail={"error": result.error.value, "message": result.message}
        )


def _operation_response(session: ATMSession, result: LedgerResult) -> OperationResponse:
    _raise_for_result(result)
    return OperationResponse(
        message=result.message,
        balance=str(session.balance),
        persisted=result.persisted
    )


def _close_session(sessions: dict, session_id: str, reason: str) -> None:
    session = sessions.pop(session_id)
    logger.info(f"Session {reason} for {session.account.name}")
    session.logout()


def create_app(ledger: Optional[Ledger] = None, max_sessions: Optional[int] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    if max_sessions is None:
        max_sessions = get_config().max_sessions
    if max_sessions < 1:
        raise ValueError("max_sessions must be at least 1")

    app = FastAPI(
        title="ATM Simulator",
        description="ATM front end over a single-file account ledger",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.state.ledger = ledger if ledger is not None else Ledger.from_config(get_config())
    app.state.sessions = {}
    app.state.max_sessions = max_sessions

    @app.get("/health")
    async def health_check(ledger: Ledger = Depends(get_ledger)):
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "atm_ledger",
            "accounts": len(ledger)
        }

    @app.post("/accounts", status_code=status.HTTP_201_CREATED)
    async def register(request: CredentialsRequest, ledger: Ledger = Depends(get_ledger)):
        """Register a new account"""
        result = ledger.register(request.name, request.pin)
        _raise_for_result(result)
        return {
            "name": request.name,
            "message": "Account created, please log in",
            "persisted": result.persisted
        }

    @app.post("/sessions", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
    async def login(credentials: CredentialsRequest, request: Request):
        """Log in and open a session"""
        session = ATMSession(request.app.state.ledger)
        if not session.login(credentials.name, credentials.pin):
            raise HTTPException(status_code=401, detail="Invalid name or PIN")

        sessions = request.app.state.sessions
        name = session.account.name
        for previous_id in [sid for sid, s in sessions.items() if s.account.name == name]:
            _close_session(sessions, previous_id, "replaced")
        # dicts keep insertion order, so the first key is the oldest session
        while len(sessions) >= request.app.state.max_sessions:
            _close_session(sessions, next(iter(sessions)), "evicted")

        session_id = str(uuid.uuid4())
        sessions[session_id] = session
        logger.info(f"Session opened for {session.account.name}")
        return SessionResponse(
            session_id=session_id,
            name=session.account.name,
            balance=str(session.balance)
        )

    @app.get("/sessions/{session_id}", response_model=SessionResponse)
    async def get_session_info(session_id: str, session: ATMSession = Depends(get_session)):
        """Current account and balance"""
        return SessionResponse(
            session_id=session_id,
            name=session.account.name,
            balance=str(session.balance)
        )

    @app.delete("/sessions/{session_id}")
    async def logout(session_id: str, request: Request, session: ATMSession = Depends(get_session)):
        """Log out and close the session"""
        _close_session(request.app.state.sessions, session_id, "closed")
        return {"message": "Logged out"}

    @app.post("/sessions/{session_id}/deposit", response_model=OperationResponse)
    async def deposit(body: AmountRequest, session: ATMSession = Depends(get_session)):
        """Deposit cash"""
        return _operation_response(session, session.deposit(body.amount))

    @app.post("/sessions/{session_id}/withdraw", response_model=OperationResponse)
    async def withdraw(body: AmountRequest, session: ATMSession = Depends(get_session)):
        """Withdraw cash"""
        return _operation_response(session, session.withdraw(body.amount))

    @app.post("/sessions/{session_id}/transfer", response_model=OperationResponse)
    async def transfer(body: TransferRequest, session: ATMSession = Depends(get_session)):
        """Transfer to another customer"""
        return _operation_response(session, session.transfer(body.recipient, body.amount))

    @app.get("/sessions/{session_id}/history", response_model=HistoryResponse)
    async def history(session: ATMSession = Depends(get_session)):
        """Transaction history, most recent first"""
        return HistoryResponse(name=session.account.name, records=list(session.history()))

    return app
