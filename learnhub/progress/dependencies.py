"""FastAPI dependencies for learner progress.

Provides dependency injection for:
- Enrollment ledger
- Current learner identity (resolved by the upstream gateway)
"""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from learnhub.core.middleware import USER_ID_HEADER

from .service import EnrollmentLedger


async def get_enrollment_ledger(request: Request) -> EnrollmentLedger:
    """Get enrollment ledger from app state.

    Args:
        request: FastAPI request

    Returns:
        EnrollmentLedger instance
    """
    ledger = getattr(request.app.state, "enrollment_ledger", None)
    if ledger is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progress service not available",
        )
    return ledger


async def get_current_learner(
    x_user_id: Annotated[str | None, Header(alias=USER_ID_HEADER)] = None,
) -> str:
    """Learner id forwarded by the gateway.

    Raises:
        HTTPException 401: If the header is missing or blank
    """
    learner_id = (x_user_id or "").strip()
    if not learner_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing learner identity",
        )
    return learner_id


# Type aliases for dependency injection
EnrollmentLedgerDep = Annotated[EnrollmentLedger, Depends(get_enrollment_ledger)]
CurrentLearner = Annotated[str, Depends(get_current_learner)]
