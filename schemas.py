# backend/schemas.py

from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

MAX_MESSAGE_CHARS = 5000
MAX_CONTENT_BYTES = 10 * 1024 * 1024

# ---------- User-related schemas ----------

class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)

class UserOut(BaseModel):
    id: str
    email: EmailStr
    created_at: datetime

    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    token_type: str  # e.g. "bearer"


# ---------- Conversation-related schemas ----------

class ConversationCreate(BaseModel):
    title: Optional[str] = Field("New Chat", max_length=200)
    document_id: Optional[UUID] = Field(None, alias="documentId")

    class Config:
        populate_by_name = True

class ConversationOut(BaseModel):
    id: str
    title: str
    document_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# ---------- Chat schemas ----------

class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_CHARS)
    conversation_id: UUID = Field(..., alias="conversationId")
    document_id: Optional[UUID] = Field(None, alias="documentId")

class ChatResponse(BaseModel):
    response: str

class MessageOut(BaseModel):
    id: str
    role: str
    content: str
    created_at: datetime

    class Config:
        from_attributes = True

class ChatHistory(BaseModel):
    messages: List[MessageOut]


# ---------- Document schemas ----------

class AnalyzeRequest(BaseModel):
    document_id: UUID = Field(..., alias="documentId")
    content: str

    @field_validator("content")
    @classmethod
    def content_within_bounds(cls, v: str) -> str:
        size = len(v.encode("utf-8"))
        if size < 1 or size > MAX_CONTENT_BYTES:
            raise ValueError("content size out of bounds")
        return v

class DocumentAnalysis(BaseModel):
    summary: str
    key_points: List[str]
    sentiment: str
    keywords: List[str]
    entities: Union[Dict[str, Any], List[Any]]

class AnalyzeResponse(BaseModel):
    success: bool
    analysis: DocumentAnalysis

class DocumentOut(BaseModel):
    id: str
    title: str
    file_name: str
    file_type: str
    file_size: int
    status: str
    summary: Optional[str] = None
    key_points: Optional[List[str]] = None
    sentiment: Optional[str] = None
    keywords: Optional[List[str]] = None
    entities: Optional[Union[Dict[str, Any], List[Any]]] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# ---------- MFA recovery code schemas ----------

class RecoveryCodesOut(BaseModel):
    recovery_codes: List[str]

class RecoveryCodeVerify(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)
