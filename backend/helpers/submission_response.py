"""
HTTP mapping for submission pipeline results.

| outcome               | status |
|-----------------------|--------|
| succeeded             | 201    |
| rejected_validation   | 422    |
| rejected_rate_limited | 429    |
| failed_persist        | 503    |
| failed_unexpected     | 500    |
"""

import math

from fastapi.responses import JSONResponse

from core.correlation import get_correlation_id
from helpers.time_utils import utc_now
from models.schemas import SubmissionOutcome, SubmissionResult

OUTCOME_STATUS_CODES = {
    SubmissionOutcome.SUCCEEDED: 201,
    SubmissionOutcome.REJECTED_VALIDATION: 422,
    SubmissionOutcome.REJECTED_RATE_LIMITED: 429,
    SubmissionOutcome.FAILED_PERSIST: 503,
    SubmissionOutcome.FAILED_UNEXPECTED: 500,
}


def submission_response(result: SubmissionResult, rate_limit: int) -> JSONResponse:
    """Build the JSON response for a pipeline result."""
    headers: dict[str, str] = {}
    if result.outcome == SubmissionOutcome.REJECTED_RATE_LIMITED:
        headers["X-RateLimit-Limit"] = str(rate_limit)
        headers["X-RateLimit-Remaining"] = "0"
        if result.reset_at is not None:
            retry_after = max(
                math.ceil((result.reset_at - utc_now()).total_seconds()), 0
            )
            headers["X-RateLimit-Reset"] = result.reset_at.isoformat()
            headers["Retry-After"] = str(retry_after)
    elif result.remaining_attempts is not None:
        headers["X-RateLimit-Limit"] = str(rate_limit)
        headers["X-RateLimit-Remaining"] = str(result.remaining_attempts)

    content = result.model_dump(mode="json", by_alias=True, exclude_none=True)
    if result.outcome in (
        SubmissionOutcome.FAILED_PERSIST,
        SubmissionOutcome.FAILED_UNEXPECTED,
    ):
        content["correlationId"] = get_correlation_id()

    return JSONResponse(
        status_code=OUTCOME_STATUS_CODES[result.outcome],
        content=content,
        headers=headers,
    )
