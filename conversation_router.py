# backend/conversation_router.py

from typing import List

from fastapi import APIRouter, Depends

import schemas
from store import UserScopedStore, get_store

router = APIRouter(
    prefix="/conversations",
    tags=["conversations"]
)

# GET /conversations → the current user's most recently active conversations
@router.get("/", response_model=List[schemas.ConversationOut])
def list_conversations(store: UserScopedStore = Depends(get_store)):
    return store.list_conversations()

# POST /conversations → create a new conversation, optionally tied to a document
@router.post("/", response_model=schemas.ConversationOut, status_code=201)
def create_conversation(
    conv: schemas.ConversationCreate,
    store: UserScopedStore = Depends(get_store),
):
    document_id = str(conv.document_id) if conv.document_id else None
    return store.create_conversation(title=conv.title or "New Chat", document_id=document_id)

# GET /conversations/{conv_id}/messages → full history, oldest first
@router.get("/{conv_id}/messages", response_model=schemas.ChatHistory)
def get_history_for_conversation(conv_id: str, store: UserScopedStore = Depends(get_store)):
    return {"messages": store.message_history(conv_id)}

# DELETE /conversations/{conv_id} → delete a conversation (and its messages)
@router.delete("/{conv_id}", status_code=204)
def delete_conversation(conv_id: str, store: UserScopedStore = Depends(get_store)):
    store.delete_conversation(conv_id)
    return
