import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, status

from ..orchestration.session import (
    AnalysisInProgressError,
    DraftIncompleteError,
    SessionClosedError,
    SessionNotFoundError,
    SessionStore,
    WizardSession,
)
from ..schemas.sessions import SessionState, ValidateRequest
from .dependencies import get_session_store

router = APIRouter(prefix="/api/v1/sessions", tags=["Sessions"])
logger = logging.getLogger(__name__)


def _load_session(session_id: str, store: SessionStore) -> WizardSession:
    try:
        return store.get(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


def _run_error_to_http(e: Exception) -> HTTPException:
    if isinstance(e, AnalysisInProgressError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, DraftIncompleteError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("", response_model=SessionState, status_code=status.HTTP_201_CREATED)
async def create_session(store: SessionStore = Depends(get_session_store)):
    session = store.create()
    return SessionState.from_session(session)


@router.get("/{session_id}", response_model=SessionState)
async def get_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    return SessionState.from_session(_load_session(session_id, store))


@router.patch("/{session_id}/draft", response_model=SessionState)
async def update_draft(
    session_id: str,
    updates: Dict[str, Any] = Body(...),
    store: SessionStore = Depends(get_session_store),
):
    """Merges the given fields (camelCase or snake_case) into the session's draft."""
    session = _load_session(session_id, store)
    try:
        session.update_draft(updates)
    except SessionClosedError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e: # pydantic ValidationError for badly typed fields
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return SessionState.from_session(session)


@router.delete("/{session_id}/draft", response_model=SessionState)
async def reset_draft(session_id: str, store: SessionStore = Depends(get_session_store)):
    session = _load_session(session_id, store)
    try:
        session.reset_draft()
    except SessionClosedError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return SessionState.from_session(session)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    try:
        store.close(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/{session_id}/analyze", response_model=SessionState)
async def analyze_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    """
    Runs the risk-analysis fallback chain for the session's draft and
    returns the updated session. Responds 409 while another run is in flight.
    """
    session = _load_session(session_id, store)
    try:
        await session.run_risk_analysis()
    except (AnalysisInProgressError, DraftIncompleteError, SessionClosedError) as e:
        logger.warning(f"Analysis request for session {session_id} rejected: {e}")
        raise _run_error_to_http(e)
    return SessionState.from_session(session)


@router.post("/{session_id}/validate", response_model=SessionState)
async def validate_session_text(
    session_id: str,
    request: ValidateRequest,
    store: SessionStore = Depends(get_session_store),
):
    session = _load_session(session_id, store)
    try:
        await session.run_legal_validation(request.text, request.validation_type, request.context)
    except (AnalysisInProgressError, DraftIncompleteError, SessionClosedError) as e:
        logger.warning(f"Validation request for session {session_id} rejected: {e}")
        raise _run_error_to_http(e)
    return SessionState.from_session(session)


@router.post("/{session_id}/error/dismiss", response_model=SessionState)
async def dismiss_error(session_id: str, store: SessionStore = Depends(get_session_store)):
    session = _load_session(session_id, store)
    session.dismiss_error()
    return SessionState.from_session(session)
