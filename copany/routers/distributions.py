"""Routes for reading and recomputing copany revenue distributions."""
from __future__ import annotations

from collections.abc import Generator
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, sessionmaker

from copany.core.config import get_settings
from copany.core.logger import get_logger
from copany.core.security import AuthenticatedUser, get_authenticated_user
from copany.db.session import get_sessionmaker
from copany.schemas.distributions import CopanyOutcomeSchema, DistributionSchema, PeriodOutcomeSchema
from copany.services import CopanyNotFoundError, DistributionService, NotCopanyOwnerError

router = APIRouter(prefix="/copanies", tags=["distributions"])
LOGGER = get_logger(__name__)


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker:
    return get_sessionmaker()


def get_db_session() -> Generator[Session, None, None]:
    """Yield a database session for the request lifecycle."""

    session = get_session_factory()()
    try:
        yield session
    finally:
        session.close()


def get_distribution_service() -> DistributionService:
    """Return a service instance per request."""

    return DistributionService(get_settings().distribution)


def _translate(exc: Exception) -> HTTPException:
    if isinstance(exc, CopanyNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, NotCopanyOwnerError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the copany owner can do this")
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get("/{copany_id}/distributions", response_model=list[DistributionSchema])
def list_distributions(
    copany_id: int,
    month: str | None = Query(default=None, description="Distribution month as YYYY-MM"),
    session: Session = Depends(get_db_session),
    service: DistributionService = Depends(get_distribution_service),
    user: AuthenticatedUser = Depends(get_authenticated_user),
) -> list[DistributionSchema]:
    try:
        rows = service.list_distributions(session, copany_id, month)
    except (CopanyNotFoundError, ValueError) as exc:
        raise _translate(exc) from exc
    return [DistributionSchema.model_validate(row) for row in rows]


@router.post("/{copany_id}/distributions/regenerate", response_model=PeriodOutcomeSchema)
def regenerate_current_month(
    copany_id: int,
    session: Session = Depends(get_db_session),
    service: DistributionService = Depends(get_distribution_service),
    user: AuthenticatedUser = Depends(get_authenticated_user),
) -> PeriodOutcomeSchema:
    """Replace this month's distributions; owner only."""

    try:
        outcome = service.regenerate_current_month(session, copany_id, user.user_id)
    except (CopanyNotFoundError, NotCopanyOwnerError) as exc:
        raise _translate(exc) from exc
    return PeriodOutcomeSchema.model_validate(outcome)


@router.post("/{copany_id}/distributions/recalculate", response_model=CopanyOutcomeSchema)
def recalculate_history(
    copany_id: int,
    session: Session = Depends(get_db_session),
    service: DistributionService = Depends(get_distribution_service),
    user: AuthenticatedUser = Depends(get_authenticated_user),
) -> CopanyOutcomeSchema:
    """Recompute every month with activity; months with paid-out amounts are left alone."""

    try:
        service.require_owner(session, copany_id, user.user_id)
        outcome = service.recalculate_history(session, copany_id)
    except (CopanyNotFoundError, NotCopanyOwnerError) as exc:
        raise _translate(exc) from exc
    LOGGER.info(
        "Copany %s recompute requested by %s: %s/%s periods ok",
        copany_id,
        user.user_id,
        outcome.successful_periods,
        len(outcome.periods),
    )
    return CopanyOutcomeSchema.model_validate(outcome)
