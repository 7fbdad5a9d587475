# backend/store.py
"""
Persistence gateway scoped to one authenticated user.

Every read and write filters on the caller's user id (messages through their
conversation), so rows owned by someone else look exactly like missing rows.
Handlers never re-check ownership themselves.

Storage errors are logged and surfaced as PersistenceFailure.
"""

import logging
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from fastapi import Depends
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

import models
from auth import get_current_user
from db import get_db
from errors import NotFound, PersistenceFailure

logger = logging.getLogger(__name__)

ANALYSIS_FIELDS = ("summary", "key_points", "sentiment", "keywords", "entities")


class UserScopedStore:
    def __init__(self, db: Session, user_id: str):
        self.db = db
        self.user_id = user_id

    def _commit(self, action: str):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {action} for user {self.user_id}: {e.__class__.__name__}")
            raise PersistenceFailure()

    # ─── Conversations ──────────────────────────────────────────────────────────

    def _conversations(self):
        return self.db.query(models.Conversation).filter(models.Conversation.user_id == self.user_id)

    def get_conversation(self, conversation_id: str) -> Optional[models.Conversation]:
        try:
            return self._conversations().filter(models.Conversation.id == conversation_id).first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load conversation: {e.__class__.__name__}")
            raise PersistenceFailure()

    def require_conversation(self, conversation_id: str) -> models.Conversation:
        conv = self.get_conversation(conversation_id)
        if conv is None:
            raise NotFound("Conversation not found")
        return conv

    def _owned_document_id(self, document_id: Optional[str]) -> Optional[str]:
        # Only link documents the caller owns
        if document_id is not None and self.get_document(document_id) is None:
            return None
        return document_id

    def _conversation_id_taken(self, conversation_id: str) -> bool:
        try:
            return self.db.query(models.Conversation.id).filter(
                models.Conversation.id == conversation_id
            ).first() is not None
        except SQLAlchemyError as e:
            logger.error(f"Failed to load conversation: {e.__class__.__name__}")
            raise PersistenceFailure()

    def _commit_conversation(self, action: str):
        try:
            self.db.commit()
        except IntegrityError:
            # The id already belongs to another user's conversation
            self.db.rollback()
            raise NotFound("Conversation not found")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {action} for user {self.user_id}: {e.__class__.__name__}")
            raise PersistenceFailure()

    def create_conversation(
        self,
        title: str = "New Chat",
        document_id: Optional[str] = None,
        conversation_id: Optional[str] = None,
    ) -> models.Conversation:
        conv = models.Conversation(
            user_id=self.user_id, title=title, document_id=self._owned_document_id(document_id)
        )
        if conversation_id is not None:
            conv.id = conversation_id
        self.db.add(conv)
        self._commit_conversation("create conversation")
        self.db.refresh(conv)
        return conv

    def list_conversations(self, limit: int = 20) -> List[models.Conversation]:
        return (
            self._conversations()
                .order_by(models.Conversation.updated_at.desc())
                .limit(limit)
                .all()
        )

    def delete_conversation(self, conversation_id: str) -> None:
        conv = self.require_conversation(conversation_id)
        self.db.delete(conv)
        self._commit("delete conversation")

    # ─── Messages ───────────────────────────────────────────────────────────────

    def _messages(self, conversation_id: str):
        return (
            self.db.query(models.Message)
                .join(models.Conversation, models.Message.conversation_id == models.Conversation.id)
                .filter(
                    models.Conversation.id == conversation_id,
                    models.Conversation.user_id == self.user_id,
                )
        )

    def recent_messages(self, conversation_id: str, limit: int = 10) -> List[models.Message]:
        """The newest `limit` messages, returned oldest first."""
        try:
            newest = (
                self._messages(conversation_id)
                    .order_by(models.Message.created_at.desc())
                    .limit(limit)
                    .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to load messages: {e.__class__.__name__}")
            raise PersistenceFailure()
        return list(reversed(newest))

    def message_history(self, conversation_id: str) -> List[models.Message]:
        self.require_conversation(conversation_id)
        return self._messages(conversation_id).order_by(models.Message.created_at.asc()).all()

    def save_chat_turn(
        self,
        conversation_id: str,
        turns: Iterable[tuple],
        document_id: Optional[str] = None,
    ) -> models.Conversation:
        """Append (role, content) turns in one commit, creating the conversation if new.

        A conversation id owned by another user raises NotFound and writes nothing.
        """
        conv = self.get_conversation(conversation_id)
        if conv is None:
            if self._conversation_id_taken(conversation_id):
                raise NotFound("Conversation not found")
            logger.info(f"Creating conversation {conversation_id} on first message")
            conv = models.Conversation(
                id=conversation_id,
                user_id=self.user_id,
                title="Document Chat" if document_id else "New Chat",
                document_id=self._owned_document_id(document_id),
            )
            self.db.add(conv)

        now = datetime.utcnow()
        # Offset timestamps so turns written together keep their order
        self.db.add_all(
            models.Message(
                conversation=conv,
                role=role,
                content=content,
                created_at=now + timedelta(microseconds=i),
            )
            for i, (role, content) in enumerate(turns)
        )
        conv.updated_at = now
        self._commit_conversation("save messages")
        return conv

    # ─── Documents ──────────────────────────────────────────────────────────────

    def _documents(self):
        return self.db.query(models.Document).filter(models.Document.user_id == self.user_id)

    def get_document(self, document_id: str) -> Optional[models.Document]:
        try:
            return self._documents().filter(models.Document.id == document_id).first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load document: {e.__class__.__name__}")
            raise PersistenceFailure()

    def require_document(self, document_id: str) -> models.Document:
        doc = self.get_document(document_id)
        if doc is None:
            raise NotFound("Document not found")
        return doc

    def list_documents(self) -> List[models.Document]:
        return self._documents().order_by(models.Document.created_at.desc()).all()

    def create_document(
        self,
        title: str,
        file_name: str,
        file_type: str,
        file_size: int,
        content: str,
        text_content: Optional[str] = None,
    ) -> models.Document:
        doc = models.Document(
            user_id=self.user_id,
            title=title,
            file_name=file_name,
            file_type=file_type,
            file_size=file_size,
            content=content,
            text_content=text_content,
            status="processing",
        )
        self.db.add(doc)
        self._commit("create document")
        self.db.refresh(doc)
        return doc

    def save_analysis(
        self, document: models.Document, analysis: dict, text_content: Optional[str] = None
    ) -> models.Document:
        """Write all analysis fields and mark the document completed in one commit.

        `text_content` fills the extracted-text cache if the upload did not.
        """
        if document.user_id != self.user_id:
            raise NotFound("Document not found")
        for field in ANALYSIS_FIELDS:
            setattr(document, field, analysis[field])
        if document.text_content is None and text_content is not None:
            document.text_content = text_content
        document.status = "completed"
        document.updated_at = datetime.utcnow()
        self._commit("save document analysis")
        return document

    def mark_failed(self, document: models.Document) -> models.Document:
        if document.user_id != self.user_id:
            raise NotFound("Document not found")
        document.status = "failed"
        document.updated_at = datetime.utcnow()
        self._commit("mark document failed")
        return document

    def delete_document(self, document_id: str) -> None:
        doc = self.require_document(document_id)
        self._conversations().filter(models.Conversation.document_id == doc.id).update(
            {models.Conversation.document_id: None}, synchronize_session=False
        )
        self.db.delete(doc)
        self._commit("delete document")

    # ─── MFA recovery codes ─────────────────────────────────────────────────────

    def _recovery_codes(self):
        return self.db.query(models.RecoveryCode).filter(models.RecoveryCode.user_id == self.user_id)

    def delete_recovery_codes(self) -> None:
        self._recovery_codes().delete(synchronize_session=False)
        self._commit("delete old recovery codes")

    def insert_recovery_codes(self, code_hashes: Iterable[str]) -> None:
        self.db.add_all(
            models.RecoveryCode(user_id=self.user_id, code_hash=h) for h in code_hashes
        )
        self._commit("store recovery codes")

    def replace_recovery_codes(self, code_hashes: Iterable[str]) -> None:
        # Two separate commits: a failed insert leaves the user with no codes
        self.delete_recovery_codes()
        self.insert_recovery_codes(code_hashes)

    def unused_recovery_codes(self) -> List[models.RecoveryCode]:
        return self._recovery_codes().filter(models.RecoveryCode.used_at.is_(None)).all()

    def mark_recovery_code_used(self, code: models.RecoveryCode) -> None:
        if code.user_id != self.user_id:
            raise NotFound("Recovery code not found")
        code.used_at = datetime.utcnow()
        self._commit("mark recovery code used")


# Dependency for FastAPI routes
def get_store(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> UserScopedStore:
    return UserScopedStore(db, current_user.id)
