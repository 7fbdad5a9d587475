# backend/document_service.py

import base64
import binascii
import io
import logging
from typing import Dict, List

import pdfplumber
from docx import Document as DocxDocument
from fastapi import HTTPException

import models
from analysis_parser import parse_analysis
from completion import ANALYSIS_OPTIONS, CompletionClient
from db import SessionLocal
from errors import InvalidInput, PersistenceFailure
from store import UserScopedStore
from validators import DOCX, PDF, TEXT_TYPES, validate_content_type

logger = logging.getLogger(__name__)

ANALYSIS_CONTENT_CHARS = 10000

ANALYSIS_SYSTEM_PROMPT = (
    "You are an expert document analyzer. "
    "Provide structured, accurate analysis in JSON format."
)


# ─── Text extraction ───────────────────────────────────────────────────────────

def _content_bytes(content: str) -> bytes:
    try:
        return base64.b64decode(content, validate=True)
    except (binascii.Error, ValueError):
        return content.encode("latin-1", errors="ignore")


def _pdf_text(data: bytes) -> str:
    with pdfplumber.open(io.BytesIO(data)) as pdf:
        return "\n".join(page.extract_text() or "" for page in pdf.pages)


def _docx_text(data: bytes) -> str:
    doc = DocxDocument(io.BytesIO(data))
    return "\n".join(p.text for p in doc.paragraphs)


def readable_text(content: str, file_type: str) -> str:
    """Plain text for a stored document, extracting PDF and DOCX bodies."""
    extractors = {PDF: _pdf_text, DOCX: _docx_text}
    extractor = extractors.get(file_type)
    if extractor is None:
        return content
    try:
        text = extractor(_content_bytes(content))
    except Exception as e:  # pdfminer and zipfile raise many unrelated types on damaged files
        logger.warning(f"Text extraction failed for {file_type}: {e.__class__.__name__}")
        return content
    return text.strip() or content


# ─── Analysis ──────────────────────────────────────────────────────────────────

def build_analysis_messages(text: str) -> List[Dict[str, str]]:
    prompt = f"""Analyze the following document and provide:
1. A concise summary (2-3 sentences)
2. 5-7 key points or main ideas
3. Overall sentiment (positive, neutral, or negative)
4. 5-10 important keywords
5. Named entities (people, organizations, locations, etc.)

Document content:
{text[:ANALYSIS_CONTENT_CHARS]}

Respond in JSON format with this structure:
{{
  "summary": "...",
  "key_points": ["...", "..."],
  "sentiment": "...",
  "keywords": ["...", "..."],
  "entities": {{
    "people": ["...", "..."],
    "organizations": ["...", "..."],
    "locations": ["...", "..."]
  }}
}}"""
    return [
        {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]


def analyze_document(
    store: UserScopedStore,
    client: CompletionClient,
    document: models.Document,
    content: str,
) -> dict:
    """Run one document through validation, completion, parsing and persistence.

    The document moves from `processing` to `completed` with all analysis
    fields written together, or to `failed` when its content does not match
    its file type or the analysis cannot be stored. Upstream errors leave it in
    `processing` so the caller can retry.
    """
    if document.status != "processing":
        raise InvalidInput("Document has already been processed.")

    if not validate_content_type(content, document.file_type):
        logger.warning(f"Document {document.id} content does not match {document.file_type}")
        store.mark_failed(document)
        raise InvalidInput("Document content does not match its file type.")

    logger.info(f"Analyzing document {document.id}")
    text = readable_text(content, document.file_type)
    completion = client.complete(build_analysis_messages(text), ANALYSIS_OPTIONS)
    analysis = parse_analysis(completion)

    try:
        store.save_analysis(
            document, analysis, text_content=None if document.file_type in TEXT_TYPES else text
        )
    except PersistenceFailure:
        try:
            store.mark_failed(document)
        except PersistenceFailure:
            logger.error(f"Could not mark document {document.id} as failed")
        raise

    logger.info(f"Document {document.id} analysis completed")
    return analysis


def run_analysis_task(document_id: str, user_id: str, client: CompletionClient) -> None:
    """Background entry point: analyze a freshly uploaded document in its own session."""
    db = SessionLocal()
    try:
        store = UserScopedStore(db, user_id)
        document = store.get_document(document_id)
        if document is None:
            logger.warning(f"Document {document_id} disappeared before analysis")
            return
        analyze_document(store, client, document, document.content)
    except HTTPException as e:
        logger.error(f"Background analysis of document {document_id} failed: {e.status_code} {e.detail}")
    finally:
        db.close()
