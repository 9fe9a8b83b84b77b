import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Query, Request, Response, WebSocket, WebSocketDisconnect, status
from fastapi.responses import JSONResponse

from rallychat.config import settings
from rallychat.errors import ChatError, ConversationNotFound, DeleteNotRequested, MessageNotFound
from rallychat.lifecycle import MessageLifecycleManager
from rallychat.logging_utils import setup_logging, RequestLoggingMiddleware, log_chat_action
from rallychat.metrics import get_metrics, get_metrics_content_type
from rallychat.models import Conversation, MessageStatus
from rallychat.realtime import ConnectionManager, conversation_snapshot
from rallychat.schemas import (
    ConversationResponse,
    ConversationsListResponse,
    DeleteConfirmRequest,
    DeleteResponse,
    ErrorResponse,
    ForwardRequest,
    HealthResponse,
    LastMessagePreview,
    MessageResponse,
    MessagesListResponse,
    ReactionRequest,
    ReactionResponse,
    ReplyContextRequest,
    ReplySnapshotResponse,
    SendMessageRequest,
    SendResponse,
    StatsResponse,
    StatusResponse,
)
from rallychat.seed import seed_store
from rallychat.storage import ConversationStore
from rallychat.tracker import TimerDeliveryTracker


# Setup structured JSON logging
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    - Startup: build a fresh store, tracker and lifecycle manager
    - Shutdown: cancel every outstanding status timer
    """
    store = ConversationStore()
    if settings.SEED_MOCK_DATA:
        seed_store(store)

    tracker = TimerDeliveryTracker(
        delivery_delay=settings.DELIVERY_DELAY_MS / 1000,
        read_delay=settings.READ_DELAY_MS / 1000,
    )
    manager = MessageLifecycleManager(store, tracker=tracker, local_sender=settings.LOCAL_SENDER_NAME)
    connections = ConnectionManager()
    manager.subscribe(connections.listener(manager))

    app.state.store = store
    app.state.manager = manager
    app.state.connections = connections
    logger.info("Chat session started")
    yield
    manager.shutdown()
    logger.info("Chat session stopped")


app = FastAPI(
    title="RallyChat API",
    description="Chat message lifecycle service for the sports buddy app",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)


def get_manager(request: Request) -> MessageLifecycleManager:
    return request.app.state.manager


Manager = Annotated[MessageLifecycleManager, Depends(get_manager)]

NOT_FOUND = {404: {"model": ErrorResponse, "description": "Conversation or message not found"}}


@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    """Map domain errors onto HTTP status codes."""
    if isinstance(exc, (ConversationNotFound, MessageNotFound)):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, DeleteNotRequested):
        status_code = status.HTTP_409_CONFLICT
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    logger.warning(f"Chat error: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


# =============================================================================
# Health Check Routes
# =============================================================================

@app.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """
    Liveness probe - always returns 200 once the app is running.
    """
    return HealthResponse(status="ok")


@app.get("/health/ready", response_model=HealthResponse)
async def health_ready(request: Request, response: Response) -> HealthResponse:
    """
    Readiness probe - returns 200 once the lifecycle manager is up,
    otherwise 503 (Service Unavailable).
    """
    if getattr(request.app.state, "manager", None) is None:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not_ready", reason="Chat session not started")

    return HealthResponse(status="ready")


# =============================================================================
# Conversation Routes
# =============================================================================

def _conversation_response(manager: MessageLifecycleManager, conversation: Conversation) -> ConversationResponse:
    last = manager.store.last_message(conversation.id)
    preview = None
    if last is not None:
        preview = LastMessagePreview(
            sender=last.sender,
            content=last.text,
            timestamp=last.timestamp,
            status=last.status if last.is_sender and last.status != MessageStatus.NONE else None,
        )
    return ConversationResponse(
        id=conversation.id,
        name=conversation.name,
        kind=conversation.kind,
        is_online=conversation.is_online,
        typing=conversation.typing,
        member_count=conversation.member_count,
        unread=conversation.unread,
        last_message=preview,
    )


@app.get("/conversations", response_model=ConversationsListResponse)
async def list_conversations(
    manager: Manager,
    q: Annotated[str | None, Query(description="Search conversation names and last messages (case-insensitive)")] = None,
) -> ConversationsListResponse:
    """
    Chat list, in the order conversations were registered.
    """
    conversations = manager.store.list_conversations(q)
    data = [_conversation_response(manager, c) for c in conversations]
    logger.info(f"GET /conversations: returned {len(data)} conversations (q={q})")
    return ConversationsListResponse(data=data, total=len(data))


@app.get("/conversations/{conversation_id}", response_model=ConversationResponse, responses=NOT_FOUND)
async def get_conversation(conversation_id: str, manager: Manager) -> ConversationResponse:
    return _conversation_response(manager, manager.store.get_conversation(conversation_id))


@app.post("/conversations/{conversation_id}/close", response_model=StatusResponse, responses=NOT_FOUND)
async def close_conversation(conversation_id: str, request: Request, manager: Manager) -> StatusResponse:
    """
    Leave the conversation: pending status timers are cancelled and the
    reply context and pending delete are cleared.
    """
    manager.close_conversation(conversation_id)
    log_chat_action(request, conversation_id, "close", result="closed")
    return StatusResponse(status="closed")


# =============================================================================
# Message Routes
# =============================================================================

@app.get("/conversations/{conversation_id}/messages", response_model=MessagesListResponse, responses=NOT_FOUND)
async def list_messages(conversation_id: str, manager: Manager) -> MessagesListResponse:
    """
    Ordered message view, oldest first, in send order.
    """
    messages = manager.messages(conversation_id)
    context = manager.reply_context(conversation_id)
    logger.debug(f"GET messages for {conversation_id}: {len(messages)} messages")
    return MessagesListResponse(
        conversation_id=conversation_id,
        data=[MessageResponse.model_validate(m) for m in messages],
        total=len(messages),
        reply_context=ReplySnapshotResponse.model_validate(context) if context else None,
    )


@app.post("/conversations/{conversation_id}/messages", response_model=SendResponse, responses=NOT_FOUND)
async def send_message(
    conversation_id: str,
    body: SendMessageRequest,
    request: Request,
    manager: Manager,
) -> SendResponse:
    """
    Send a message as the local user.

    - Blank text is ignored (status "ignored", nothing appended)
    - reply_to_id quotes that message; otherwise the active reply context is used
    - The message starts as "sent" and is later marked delivered, then read
    """
    reply_context = None
    # A blank send is ignored before any reply target is looked up
    if body.reply_to_id is not None and body.text.strip():
        reply_context = manager.store.get(conversation_id, body.reply_to_id)

    message = manager.send(conversation_id, body.text, reply_context)
    if message is None:
        log_chat_action(request, conversation_id, "send", result="ignored")
        return SendResponse(status="ignored")

    log_chat_action(request, conversation_id, "send", message_id=message.id, result="sent")
    return SendResponse(status="sent", message=MessageResponse.model_validate(message))


@app.put("/conversations/{conversation_id}/reply-context", response_model=ReplySnapshotResponse, responses=NOT_FOUND)
async def set_reply_context(
    conversation_id: str,
    body: ReplyContextRequest,
    manager: Manager,
) -> ReplySnapshotResponse:
    message = manager.store.get(conversation_id, body.message_id)
    snapshot = manager.set_reply_context(conversation_id, message)
    return ReplySnapshotResponse.model_validate(snapshot)


@app.delete("/conversations/{conversation_id}/reply-context", response_model=StatusResponse, responses=NOT_FOUND)
async def cancel_reply_context(conversation_id: str, manager: Manager) -> StatusResponse:
    manager.cancel_reply(conversation_id)
    return StatusResponse(status="cancelled")


@app.post(
    "/conversations/{conversation_id}/messages/{message_id}/reactions",
    response_model=ReactionResponse,
    responses=NOT_FOUND,
)
async def toggle_reaction(
    conversation_id: str,
    message_id: int,
    body: ReactionRequest,
    request: Request,
    manager: Manager,
) -> ReactionResponse:
    """Toggle a reaction on a message (add if absent, remove if present)."""
    added = manager.react(conversation_id, message_id, body.emoji)
    result = "added" if added else "removed"
    log_chat_action(request, conversation_id, "react", message_id=message_id, result=result)
    message = manager.store.get(conversation_id, message_id)
    return ReactionResponse(status=result, message=MessageResponse.model_validate(message))


@app.post(
    "/conversations/{conversation_id}/messages/{message_id}/delete",
    response_model=DeleteResponse,
    responses=NOT_FOUND,
)
async def request_delete(
    conversation_id: str,
    message_id: int,
    request: Request,
    manager: Manager,
) -> DeleteResponse:
    """
    First step of a delete. The message stays until the delete is confirmed.
    """
    manager.request_delete(conversation_id, message_id)
    log_chat_action(request, conversation_id, "delete_request", message_id=message_id, result="pending")
    return DeleteResponse(status="pending", message_id=message_id)


@app.post(
    "/conversations/{conversation_id}/messages/{message_id}/delete/confirm",
    response_model=DeleteResponse,
    responses={
        **NOT_FOUND,
        409: {"model": ErrorResponse, "description": "No pending delete for this message"},
    },
)
async def confirm_delete(
    conversation_id: str,
    message_id: int,
    body: DeleteConfirmRequest,
    request: Request,
    manager: Manager,
) -> DeleteResponse:
    """
    Second step of a delete. confirmed=false declines and keeps the message.
    """
    deleted = manager.confirm_delete(conversation_id, message_id, body.confirmed)
    result = "deleted" if deleted else "declined"
    log_chat_action(request, conversation_id, "delete_confirm", message_id=message_id, result=result)
    return DeleteResponse(status=result, message_id=message_id)


@app.post(
    "/conversations/{conversation_id}/messages/{message_id}/copy",
    response_model=StatusResponse,
    responses=NOT_FOUND,
)
async def copy_message(conversation_id: str, message_id: int, request: Request, manager: Manager) -> StatusResponse:
    manager.copy(conversation_id, message_id)
    log_chat_action(request, conversation_id, "copy", message_id=message_id, result="copied")
    return StatusResponse(status="copied")


@app.post(
    "/conversations/{conversation_id}/messages/{message_id}/forward",
    response_model=SendResponse,
    responses=NOT_FOUND,
)
async def forward_message(
    conversation_id: str,
    message_id: int,
    body: ForwardRequest,
    request: Request,
    manager: Manager,
) -> SendResponse:
    """Forward a message's text into another conversation as a new send."""
    message = manager.forward(conversation_id, message_id, body.target_conversation_id)
    log_chat_action(request, conversation_id, "forward", message_id=message_id, result="sent")
    return SendResponse(status="sent", message=MessageResponse.model_validate(message))


# =============================================================================
# Realtime Route
# =============================================================================

@app.websocket("/conversations/{conversation_id}/ws")
async def conversation_updates(websocket: WebSocket, conversation_id: str):
    """
    Push the ordered message list on connect and after every change.
    """
    manager: MessageLifecycleManager = websocket.app.state.manager
    connections: ConnectionManager = websocket.app.state.connections

    if not manager.store.has_conversation(conversation_id):
        await websocket.close(code=4404)
        return

    await connections.connect(websocket, conversation_id)
    try:
        await websocket.send_json(conversation_snapshot(manager, conversation_id))
        while True:
            # Clients only listen; anything they send is ignored
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        connections.disconnect(websocket, conversation_id)


# =============================================================================
# Stats Route
# =============================================================================

@app.get("/stats", response_model=StatsResponse)
async def get_statistics(manager: Manager) -> StatsResponse:
    """
    Message-level counts across every conversation.
    """
    stats = manager.store.stats()
    logger.info(f"GET /stats: returned stats for {stats['total_messages']} messages")
    return StatsResponse(**stats)


# =============================================================================
# Metrics Route
# =============================================================================

@app.get("/metrics")
async def metrics() -> Response:
    """
    Expose Prometheus-style metrics.
    """
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )
