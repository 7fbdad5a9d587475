# backend/document_router.py

import base64
import logging
import os
from typing import List

from fastapi import APIRouter, BackgroundTasks, Body, Depends, File, UploadFile

import schemas
from completion import CompletionClient, get_completion_client
from document_service import analyze_document, readable_text, run_analysis_task
from errors import InvalidInput
from rate_limiter import RateLimiter, get_rate_limiter
from store import UserScopedStore, get_store
from validators import (
    ALLOWED_FILE_TYPES,
    MAX_UPLOAD_BYTES,
    TEXT_TYPES,
    validate_content_type,
    validate_payload,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["documents"]
)

# ─── POST /analyze-document ────────────────────────────────────────────────────
@router.post("/analyze-document", response_model=schemas.AnalyzeResponse)
def analyze(
    body: dict = Body(...),  # { "documentId", "content" }
    store: UserScopedStore = Depends(get_store),
    limiter: RateLimiter = Depends(get_rate_limiter),
    client: CompletionClient = Depends(get_completion_client),
):
    payload = validate_payload("analyze", body)
    limiter.check(store.user_id)

    document = store.require_document(str(payload.document_id))
    analysis = analyze_document(store, client, document, payload.content)
    return {"success": True, "analysis": analysis}

# ─── POST /documents → upload, analysis runs in the background ─────────────────
@router.post("/documents", response_model=schemas.DocumentOut, status_code=201)
def upload_document(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    store: UserScopedStore = Depends(get_store),
    limiter: RateLimiter = Depends(get_rate_limiter),
    client: CompletionClient = Depends(get_completion_client),
):
    file_type = file.content_type
    if file_type not in ALLOWED_FILE_TYPES:
        raise InvalidInput("Please upload a PDF, DOCX, TXT, or CSV file")

    data = file.file.read(MAX_UPLOAD_BYTES + 1)
    if not data or len(data) > MAX_UPLOAD_BYTES:
        raise InvalidInput("File size must be less than 10MB")
    if not validate_content_type(data, file_type):
        raise InvalidInput("File content does not match its type")

    limiter.check(store.user_id)

    if file_type in TEXT_TYPES:
        content = data.decode("utf-8")
        text_content = None
    else:
        content = base64.b64encode(data).decode("ascii")
        # Extract once here; chat turns read the cached text
        text_content = readable_text(content, file_type)

    file_name = file.filename or "document"
    document = store.create_document(
        title=os.path.splitext(file_name)[0] or file_name,
        file_name=file_name,
        file_type=file_type,
        file_size=len(data),
        content=content,
        text_content=text_content,
    )
    logger.info(f"Uploaded document {document.id} ({file_type}, {len(data)} bytes)")

    # Callers poll GET /documents/{id} for the status change
    background_tasks.add_task(run_analysis_task, document.id, store.user_id, client)
    return document

# ─── GET /documents ────────────────────────────────────────────────────────────
@router.get("/documents", response_model=List[schemas.DocumentOut])
def list_documents(store: UserScopedStore = Depends(get_store)):
    return store.list_documents()

# ─── GET /documents/{doc_id} → status polling ──────────────────────────────────
@router.get("/documents/{doc_id}", response_model=schemas.DocumentOut)
def get_document(doc_id: str, store: UserScopedStore = Depends(get_store)):
    return store.require_document(doc_id)

# ─── DELETE /documents/{doc_id} ────────────────────────────────────────────────
@router.delete("/documents/{doc_id}", status_code=204)
def delete_document(doc_id: str, store: UserScopedStore = Depends(get_store)):
    store.delete_document(doc_id)
    return
