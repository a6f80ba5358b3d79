"""
Vote administration endpoints.

Reading a vote is public; creating and updating require the admin token.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, status

from api.deps import require_admin
from core.exceptions import VoteAlreadyExistsError, VoteNotFoundError
from repositories.provider import get_voting_repository
from repositories.voting_repository import VotingAlreadyExists, VotingRepository
from schemas.converters import voting_model_to_schema
from schemas.voting import VotingCreate, VotingResponse, VotingUpdate

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/{vote_id}", response_model=VotingResponse)
async def get_voting(
    vote_id: str,
    voting_repo: Annotated[VotingRepository, Depends(get_voting_repository)],
) -> VotingResponse:
    """Get a vote's current settings."""
    vote = await voting_repo.get_by_id(vote_id)
    if vote is None:
        raise VoteNotFoundError()
    return voting_model_to_schema(vote)


@router.post(
    "/{vote_id}",
    response_model=VotingResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_voting(
    vote_id: str,
    data: VotingCreate,
    voting_repo: Annotated[VotingRepository, Depends(get_voting_repository)],
) -> VotingResponse:
    """Create a vote under the given id."""
    if await voting_repo.get_by_id(vote_id) is not None:
        raise VoteAlreadyExistsError()

    try:
        vote = await voting_repo.create(
            vote_id=vote_id,
            active=data.active,
            allowed_participants=data.allowed_participants,
            allow_all=bool(data.allow_all),
        )
    except VotingAlreadyExists:
        raise VoteAlreadyExistsError()

    logger.info("vote_created", vote_id=vote_id, allow_all=vote.allow_all)
    return voting_model_to_schema(vote)


@router.patch(
    "/{vote_id}",
    response_model=VotingResponse,
    dependencies=[Depends(require_admin)],
)
async def update_voting(
    vote_id: str,
    data: VotingUpdate,
    voting_repo: Annotated[VotingRepository, Depends(get_voting_repository)],
) -> VotingResponse:
    """Update the provided fields of a vote."""
    vote = await voting_repo.update(vote_id, **data.model_dump(exclude_unset=True))
    if vote is None:
        raise VoteNotFoundError()

    logger.info("vote_updated", vote_id=vote_id, fields=sorted(data.model_fields_set))
    return voting_model_to_schema(vote)
