# backend/errors.py

from fastapi import HTTPException, status

GENERIC_ERROR = "Unable to process your request. Please try again."


class InvalidInput(HTTPException):
    def __init__(self, detail: str = "Invalid request. Please check your input and try again."):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class Unauthenticated(HTTPException):
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class NotFound(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class RateLimited(HTTPException):
    def __init__(self, retry_after: int = 3600):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please try again later.",
            headers={"Retry-After": str(retry_after)},
        )
        self.retry_after = retry_after


# ─── Upstream AI gateway failures ──────────────────────────────────────────────

class UpstreamRateLimited(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded. Please try again later.",
        )


class UpstreamBillingRequired(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail="AI service requires credits. Please add credits to your account.",
        )


class UpstreamUnavailable(HTTPException):
    def __init__(self):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=GENERIC_ERROR)


# ─── Storage failures ──────────────────────────────────────────────────────────

class PersistenceFailure(HTTPException):
    def __init__(self):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=GENERIC_ERROR)


class AnalysisParseFailure(ValueError):
    """Completion text did not contain a usable analysis object.

    Never leaves the result parser; callers get the fallback analysis instead.
    """
