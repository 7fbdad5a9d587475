import json
import uuid

from conftest import make_document

import models
from analysis_parser import fallback_analysis
from completion import ANALYSIS_OPTIONS
from errors import UpstreamUnavailable

ANALYSIS = {
    "summary": "Revenue grew in the third quarter.",
    "key_points": ["Revenue up 12%", "Costs flat"],
    "sentiment": "positive",
    "keywords": ["revenue", "quarter"],
    "entities": {"people": [], "organizations": ["Acme"], "locations": []},
}


def analyze(client, headers, doc_id, content):
    return client.post("/analyze-document", json={"documentId": doc_id, "content": content}, headers=headers)


def reload(db, doc_id):
    db.expire_all()
    return db.get(models.Document, doc_id)


def test_successful_analysis_completes_document(client, headers, db, user, fake_llm):
    doc = make_document(db, user)
    fake_llm.reply = "```json\n" + json.dumps(ANALYSIS) + "\n```"

    r = analyze(client, headers, doc.id, doc.content)

    assert r.status_code == 200
    assert r.json() == {"success": True, "analysis": ANALYSIS}
    saved = reload(db, doc.id)
    assert saved.status == "completed"
    assert saved.summary == ANALYSIS["summary"]
    assert saved.key_points == ANALYSIS["key_points"]
    assert saved.sentiment == "positive"
    assert saved.keywords == ANALYSIS["keywords"]
    assert saved.entities == ANALYSIS["entities"]

    messages, options = fake_llm.calls[0]
    assert options == ANALYSIS_OPTIONS
    assert "Quarterly revenue grew" in messages[1]["content"]


def test_unparseable_completion_stores_fallback(client, headers, db, user, fake_llm):
    doc = make_document(db, user)
    fake_llm.reply = "Sorry, I can't produce JSON today."

    r = analyze(client, headers, doc.id, doc.content)

    assert r.status_code == 200
    assert r.json()["analysis"] == fallback_analysis()
    saved = reload(db, doc.id)
    assert saved.status == "completed"
    assert saved.sentiment == "neutral"


def test_content_type_mismatch_fails_document(client, headers, db, user, fake_llm):
    doc = make_document(db, user, content="%PDF-1.4 fake", file_type="text/plain")

    r = analyze(client, headers, doc.id, "%PDF-1.4 fake")

    assert r.status_code == 400
    assert fake_llm.calls == []
    saved = reload(db, doc.id)
    assert saved.status == "failed"
    assert saved.summary is None
    assert saved.key_points is None
    assert saved.sentiment is None
    assert saved.keywords is None
    assert saved.entities is None


def test_pdf_content_is_accepted_for_pdf_documents(client, headers, db, user, fake_llm):
    doc = make_document(db, user, content="%PDF-1.4 not really a pdf", file_type="application/pdf")
    fake_llm.reply = json.dumps(ANALYSIS)

    r = analyze(client, headers, doc.id, "%PDF-1.4 not really a pdf")

    assert r.status_code == 200
    assert reload(db, doc.id).status == "completed"


def test_finished_documents_cannot_be_reanalyzed(client, headers, db, user, fake_llm):
    done = make_document(db, user, status="completed")
    failed = make_document(db, user, status="failed")

    assert analyze(client, headers, done.id, "text").status_code == 400
    assert analyze(client, headers, failed.id, "text").status_code == 400
    assert fake_llm.calls == []
    assert reload(db, failed.id).status == "failed"


def test_other_users_document_is_404(client, headers, db, other_user):
    doc = make_document(db, other_user)
    assert analyze(client, headers, doc.id, doc.content).status_code == 404
    assert reload(db, doc.id).status == "processing"


def test_upstream_failure_leaves_document_processing(client, headers, db, user, fake_llm):
    doc = make_document(db, user)
    fake_llm.error = UpstreamUnavailable()

    r = analyze(client, headers, doc.id, doc.content)

    assert r.status_code == 500
    assert r.json()["detail"] == "Unable to process your request. Please try again."
    assert reload(db, doc.id).status == "processing"


def test_invalid_analyze_payload(client, headers, fake_llm):
    assert analyze(client, headers, "not-a-uuid", "text").status_code == 400
    assert fake_llm.calls == []


# ─── Upload + background analysis ──────────────────────────────────────────────

def test_upload_runs_analysis_in_background(client, headers, db, fake_llm):
    fake_llm.reply = json.dumps(ANALYSIS)

    r = client.post(
        "/documents",
        files={"file": ("notes.txt", b"Meeting notes: ship on Friday.", "text/plain")},
        headers=headers,
    )

    assert r.status_code == 201
    body = r.json()
    assert body["status"] == "processing"
    assert body["title"] == "notes"
    assert body["file_size"] == 30

    # TestClient runs background tasks before returning
    polled = client.get(f"/documents/{body['id']}", headers=headers)
    assert polled.json()["status"] == "completed"
    assert polled.json()["summary"] == ANALYSIS["summary"]


def test_upload_rejects_unsupported_type(client, headers, db):
    r = client.post("/documents", files={"file": ("pic.png", b"\x89PNG....", "image/png")}, headers=headers)
    assert r.status_code == 400
    assert db.query(models.Document).count() == 0


def test_upload_rejects_mismatched_content(client, headers, db):
    r = client.post("/documents", files={"file": ("fake.pdf", b"hello there", "application/pdf")}, headers=headers)
    assert r.status_code == 400
    assert db.query(models.Document).count() == 0


def test_binary_upload_is_stored_base64(client, headers, db, fake_llm):
    r = client.post(
        "/documents",
        files={"file": ("scan.pdf", b"%PDF-1.4\n%garbage", "application/pdf")},
        headers=headers,
    )
    assert r.status_code == 201
    saved = reload(db, r.json()["id"])
    assert saved.content == "JVBERi0xLjQKJWdhcmJhZ2U="


def test_list_and_delete_documents(client, headers, db, user, other_user):
    mine = make_document(db, user)
    make_document(db, other_user)

    listed = client.get("/documents", headers=headers).json()
    assert [d["id"] for d in listed] == [mine.id]

    assert client.delete(f"/documents/{mine.id}", headers=headers).status_code == 204
    assert client.get(f"/documents/{mine.id}", headers=headers).status_code == 404


def test_failed_analysis_write_marks_document_failed(client, headers, db, user, fake_llm, monkeypatch):
    import store
    from errors import PersistenceFailure

    doc = make_document(db, user)
    fake_llm.reply = json.dumps(ANALYSIS)

    def failing_save(self, document, analysis, text_content=None):
        raise PersistenceFailure()

    monkeypatch.setattr(store.UserScopedStore, "save_analysis", failing_save)
    r = analyze(client, headers, doc.id, doc.content)

    assert r.status_code == 500
    assert r.json()["detail"] == "Unable to process your request. Please try again."
    saved = reload(db, doc.id)
    assert saved.status == "failed"
    assert saved.summary is None
    assert saved.key_points is None
    assert saved.sentiment is None


def test_binary_upload_caches_extracted_text(client, headers, db, fake_llm, monkeypatch):
    import document_service

    extracted = []

    def fake_pdf_text(data):
        extracted.append(data)
        return "Scanned contract text."

    monkeypatch.setattr(document_service, "_pdf_text", fake_pdf_text)
    fake_llm.reply = json.dumps(ANALYSIS)

    r = client.post(
        "/documents",
        files={"file": ("scan.pdf", b"%PDF-1.4\n%garbage", "application/pdf")},
        headers=headers,
    )
    assert r.status_code == 201
    saved = reload(db, r.json()["id"])
    assert saved.text_content == "Scanned contract text."

    # Chatting about the document reads the cached text
    before = len(extracted)
    chat = client.post(
        "/chat",
        json={"message": "What is this?", "conversationId": str(uuid.uuid4()), "documentId": saved.id},
        headers=headers,
    )
    assert chat.status_code == 200
    assert len(extracted) == before
    assert "Scanned contract text." in fake_llm.calls[-1][0][0]["content"]
