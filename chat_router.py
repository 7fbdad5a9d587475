# backend/chat_router.py

import logging

from fastapi import APIRouter, Body, Depends

from completion import CHAT_OPTIONS, CompletionClient, get_completion_client
from context import assemble_context
from rate_limiter import RateLimiter, get_rate_limiter
from schemas import ChatResponse
from store import UserScopedStore, get_store
from validators import validate_payload

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["chat"]
)

# ─── POST /chat ────────────────────────────────────────────────────────────────
@router.post("/chat", response_model=ChatResponse)
def chat(
    body: dict = Body(...),  # { "message", "conversationId", "documentId"? }
    store: UserScopedStore = Depends(get_store),
    limiter: RateLimiter = Depends(get_rate_limiter),
    client: CompletionClient = Depends(get_completion_client),
):
    # 1) Validate before anything else touches storage
    payload = validate_payload("chat", body)
    conversation_id = str(payload.conversation_id)
    document_id = str(payload.document_id) if payload.document_id else None

    # 2) Per-user request budget
    limiter.check(store.user_id)

    logger.info(f"Chat request: conversation={conversation_id} document={document_id}")

    # 3) History + document context + the new message
    messages = assemble_context(store, conversation_id, payload.message, document_id)

    # 4) Ask the AI gateway
    reply = client.complete(messages, CHAT_OPTIONS)

    # 5) Store both turns; the conversation is created on its first message
    store.save_chat_turn(
        conversation_id,
        [("user", payload.message), ("assistant", reply)],
        document_id=document_id,
    )

    return {"response": reply}
