# backend/mfa_router.py

import logging
import secrets
import string
from typing import List

from fastapi import APIRouter, Depends

import schemas
from auth import pwd_context
from errors import InvalidInput
from store import UserScopedStore, get_store

logger = logging.getLogger(__name__)

RECOVERY_CODE_COUNT = 8
RECOVERY_CODE_LENGTH = 12
RECOVERY_CODE_ALPHABET = string.ascii_uppercase + string.digits

router = APIRouter(
    tags=["mfa"]
)

def generate_recovery_code() -> str:
    return "".join(secrets.choice(RECOVERY_CODE_ALPHABET) for _ in range(RECOVERY_CODE_LENGTH))

def normalize_code(code: str) -> str:
    return code.strip().replace("-", "").replace(" ", "").upper()

# ─── POST /generate-recovery-codes ─────────────────────────────────────────────
@router.post("/generate-recovery-codes", response_model=schemas.RecoveryCodesOut)
def generate_recovery_codes(store: UserScopedStore = Depends(get_store)):
    codes: List[str] = [generate_recovery_code() for _ in range(RECOVERY_CODE_COUNT)]

    # Only hashes are stored; the plain codes are shown to the user once
    store.replace_recovery_codes([pwd_context.hash(code) for code in codes])

    logger.info(f"Generated {len(codes)} recovery codes for user {store.user_id}")
    return {"recovery_codes": codes}

# ─── POST /verify-recovery-code → consume one code ─────────────────────────────
@router.post("/verify-recovery-code")
def verify_recovery_code(body: schemas.RecoveryCodeVerify, store: UserScopedStore = Depends(get_store)):
    code = normalize_code(body.code)
    for stored in store.unused_recovery_codes():
        if pwd_context.verify(code, stored.code_hash):
            store.mark_recovery_code_used(stored)
            logger.info(f"Recovery code used by user {store.user_id}")
            return {"verified": True}

    logger.warning(f"Invalid recovery code attempt for user {store.user_id}")
    raise InvalidInput("Invalid or already used recovery code")
