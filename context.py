# backend/context.py
"""
Builds the message list sent to the completion gateway for a chat turn.

The prompt is bounded: a system instruction (with at most a 3000-character
document excerpt), the last 10 stored turns oldest-first, then the new user
message.
"""

import logging
from typing import Dict, List, Optional

from document_service import readable_text
from errors import PersistenceFailure
from store import UserScopedStore

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 10
DOCUMENT_EXCERPT_CHARS = 3000

GENERIC_SYSTEM_PROMPT = "You are a helpful AI assistant. Provide clear, accurate, and concise answers."


def document_system_prompt(content: str, summary: Optional[str], key_points: Optional[List[str]]) -> str:
    bullets = "\n".join(f"- {point}" for point in key_points) if key_points else "Not available"
    return f"""You are an AI assistant helping users understand and analyze their document.

Document Summary: {summary or "Not available"}

Key Points:
{bullets}

Document Content (first {DOCUMENT_EXCERPT_CHARS} characters):
{content[:DOCUMENT_EXCERPT_CHARS]}

Answer the user's questions based on this document content. Be accurate and reference specific parts of the document when relevant."""


def system_prompt_for(store: UserScopedStore, document_id: Optional[str]) -> str:
    if not document_id:
        return GENERIC_SYSTEM_PROMPT
    try:
        document = store.get_document(document_id)
    except PersistenceFailure as e:
        logger.error(f"Error fetching document {document_id}: {e.detail}")
        return GENERIC_SYSTEM_PROMPT
    if document is None:
        logger.warning(f"Document {document_id} not found for chat context")
        return GENERIC_SYSTEM_PROMPT
    text = document.text_content or readable_text(document.content, document.file_type)
    return document_system_prompt(text, document.summary, document.key_points)


def assemble_context(
    store: UserScopedStore,
    conversation_id: str,
    message: str,
    document_id: Optional[str] = None,
) -> List[Dict[str, str]]:
    history = store.recent_messages(conversation_id, limit=HISTORY_LIMIT)
    messages = [{"role": "system", "content": system_prompt_for(store, document_id)}]
    messages.extend({"role": m.role, "content": m.content} for m in history)
    messages.append({"role": "user", "content": message})
    return messages
