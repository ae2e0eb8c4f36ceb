"""Chat routes: sessions, messages, history pagination and a live event feed."""

import asyncio
import contextlib
import logging

from fastapi import APIRouter, HTTPException, Request, WebSocket, WebSocketDisconnect

from chatstore.models.schemas import (
    CreateSessionRequest,
    LoadHistoryRequest,
    LoadHistoryResponse,
    Message,
    SearchRequest,
    Session,
    SessionSummary,
    StoreState,
    SubmitMessageRequest,
)
from chatstore.store.chat_store import ChatStore
from chatstore.store.errors import InvalidSubmissionError, SessionNotFoundError
from chatstore.utils.text import truncate_text

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


def _store(request: Request) -> ChatStore:
    return request.app.state.store


def _summary(session: Session) -> SessionSummary:
    return SessionSummary(
        id=session.id,
        title=session.title,
        last_message_preview=truncate_text(session.last_message_text),
        last_activity_at=session.last_activity_at,
        message_count=len(session.messages),
    )


@router.get("/sessions", response_model=list[SessionSummary])
async def list_sessions(request: Request, q: str = ""):
    """List sessions in recency order, optionally filtered by title."""
    return [_summary(s) for s in _store(request).filter_by_title(q)]


@router.put("/search", response_model=list[SessionSummary])
async def set_search(request: Request, body: SearchRequest):
    """Store the search query shared by every client and return the matches."""
    return [_summary(s) for s in _store(request).set_search_query(body.query)]


@router.post("/sessions", response_model=SessionSummary, status_code=201)
async def create_session(request: Request, body: CreateSessionRequest):
    try:
        session = _store(request).create_session(body.title)
    except InvalidSubmissionError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _summary(session)


@router.delete("/sessions/{session_id}")
async def delete_session(request: Request, session_id: int):
    if not _store(request).delete_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"status": "deleted", "session_id": session_id}


@router.post("/sessions/{session_id}/select", response_model=SessionSummary)
async def select_session(request: Request, session_id: int):
    session = _store(request).select_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return _summary(session)


@router.get("/selection")
async def get_selection(request: Request):
    session = _store(request).active_session
    return {"session": _summary(session) if session else None}


@router.get("/state", response_model=StoreState)
async def get_state(request: Request):
    store = _store(request)
    return StoreState(
        is_typing=store.is_exchange_in_flight,
        is_loading=store.is_loading_history,
        active_session_id=store.collection.active_session_id,
    )


@router.get("/sessions/{session_id}/messages", response_model=list[Message])
async def list_messages(request: Request, session_id: int):
    try:
        session = _store(request).require_session(session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return session.messages


@router.post(
    "/sessions/{session_id}/messages", response_model=Message, status_code=202
)
async def submit_message(request: Request, session_id: int, body: SubmitMessageRequest):
    """Accept a message optimistically; delivery and reply happen in the background."""
    lifecycle = request.app.state.lifecycle
    try:
        return await lifecycle.submit(session_id, body.text, body.image)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except InvalidSubmissionError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.post(
    "/sessions/{session_id}/messages/{message_id}/resend",
    response_model=Message,
    status_code=202,
)
async def resend_message(request: Request, session_id: int, message_id: int):
    lifecycle = request.app.state.lifecycle
    try:
        return await lifecycle.resend(session_id, message_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except InvalidSubmissionError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/sessions/{session_id}/history", response_model=LoadHistoryResponse)
async def load_history(request: Request, session_id: int, body: LoadHistoryRequest):
    """Prepend the next batch of older messages."""
    store = _store(request)
    if store.get_session(session_id) is None:
        raise HTTPException(status_code=404, detail="Session not found")

    pagination = request.app.state.pagination
    loaded = await pagination.load_older(session_id, body.offset)
    return LoadHistoryResponse(
        loaded=loaded, exhausted=pagination.is_exhausted(session_id)
    )


async def _forward_events(websocket: WebSocket, queue: asyncio.Queue) -> None:
    """Send queued store events until the socket stops accepting them."""
    while True:
        event = await queue.get()
        try:
            await websocket.send_json(event.to_dict())
        except Exception:
            logger.exception("Failed to push %s event, stopping event feed", event.type)
            return


@router.websocket("/ws")
async def events_websocket(websocket: WebSocket):
    """Push store events (new messages, status changes, typing) to the client."""
    store: ChatStore = websocket.app.state.store
    queue = store.subscribe()

    await websocket.accept()
    forwarder = asyncio.create_task(_forward_events(websocket, queue))
    try:
        while True:
            # Client messages are ignored; receiving only detects disconnects.
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("Event WebSocket disconnected")
    finally:
        forwarder.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await forwarder
        store.unsubscribe(queue)
