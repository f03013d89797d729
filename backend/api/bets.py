# =====================================
# backend/api/bets.py - Bets Router
# =====================================
import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Response
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from api.auth import get_current_user, get_optional_user, get_user_or_anonymous
from database.dependencies import get_bet_store
from models.schemas import (
    Bet,
    BetCreate,
    BetDetailResponse,
    BetSummary,
    CurrentUser,
    FinalizeRequest,
    Visibility,
    Vote,
    VoteCreate,
    VoteToggleResponse,
)
from services import settlement
from services.bet_store import BetStore
from services.exceptions import BetError
from utils import analytics

logger = logging.getLogger(__name__)

router = APIRouter()
votes_router = APIRouter()

NO_CACHE_HEADERS = {
    'Cache-Control': 'no-store, must-revalidate',
    'Pragma': 'no-cache',
}


def _http_error(error: BetError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)


@router.post("", response_model=Bet, status_code=201)
async def create_bet(
    bet_data: BetCreate,
    current_user: CurrentUser = Depends(get_current_user),
    store: BetStore = Depends(get_bet_store),
):
    """Cria uma nova aposta (criador autenticado)"""
    try:
        bet = store.create_bet(bet_data, current_user)
        analytics.track(analytics.BET_CREATION_SUCCESS, analytics.bet_properties(bet))
        return bet

    except BetError as e:
        analytics.track(analytics.BET_CREATION_ERROR, {'error': e.message})
        raise _http_error(e)
    except Exception as e:
        logger.exception("Error creating bet")
        raise HTTPException(status_code=500, detail=f"Failed to create bet: {str(e)}")


@router.get("", response_model=List[BetSummary])
async def list_bets(
    current_user: Optional[CurrentUser] = Depends(get_user_or_anonymous),
    store: BetStore = Depends(get_bet_store),
):
    """
    Lista apostas públicas + privadas do próprio usuário
    Sempre responde um array (vazio em caso de erro), sem cache
    """
    try:
        requester_email = current_user.email if current_user else None
        now = store.clock()
        bets = [
            BetSummary(**bet.model_dump(), status=settlement.bet_status(bet, now))
            for bet in store.list_bets(requester_email)
        ]
        return JSONResponse(jsonable_encoder(bets), headers=NO_CACHE_HEADERS)

    except Exception as e:
        logger.error("Error in GET /api/bets: %s", e)
        return JSONResponse([], headers=NO_CACHE_HEADERS)


@router.get("/{bet_id}", response_model=BetDetailResponse)
async def get_bet(
    bet_id: str,
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    store: BetStore = Depends(get_bet_store),
):
    """Aposta + votos + placar/prêmio"""
    try:
        bet, votes, result = store.get_bet_detail(bet_id)

        if bet.visibility == Visibility.PRIVATE and current_user is None:
            raise HTTPException(status_code=401, detail="Login required to view this bet")

        analytics.track(analytics.BET_VIEW, {
            **analytics.bet_properties(bet),
            'votesCount': len(votes),
            'isCreator': current_user is not None and current_user.email == bet.creator_email,
        })

        return BetDetailResponse(
            bet=bet,
            status=settlement.bet_status(bet, store.clock()),
            votes=votes,
            settlement=result,
        )

    except HTTPException:
        raise
    except BetError as e:
        raise _http_error(e)
    except Exception as e:
        logger.exception("Error loading bet %s", bet_id)
        raise HTTPException(status_code=500, detail=f"Failed to get bet: {str(e)}")


@router.post("/{bet_id}", response_model=Vote, status_code=201)
@router.post("/{bet_id}/votes", response_model=Vote, status_code=201)
async def cast_vote(
    bet_id: str,
    vote_data: VoteCreate,
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    store: BetStore = Depends(get_bet_store),
):
    """Registra um voto"""
    try:
        vote = store.cast_vote(
            bet_id,
            vote_data.chosen_option,
            voter_name=vote_data.voter_name,
            user=current_user,
        )
        analytics.track(analytics.BET_VOTE_SUCCESS, analytics.vote_properties(vote))
        return vote

    except BetError as e:
        analytics.track(analytics.BET_VOTE_ERROR, {'betId': bet_id, 'error': e.message})
        raise _http_error(e)
    except Exception as e:
        logger.exception("Error voting on bet %s", bet_id)
        raise HTTPException(status_code=500, detail=f"Failed to vote: {str(e)}")


@router.post("/{bet_id}/finalize", response_model=Bet)
async def finalize_bet(
    bet_id: str,
    request: FinalizeRequest,
    current_user: CurrentUser = Depends(get_current_user),
    store: BetStore = Depends(get_bet_store),
):
    """Registra o resultado final (apenas o criador, uma única vez)"""
    try:
        bet = store.finalize_bet(bet_id, request.result, current_user.email)
        analytics.track(analytics.BET_FINALIZE_SUCCESS, analytics.bet_properties(bet))
        return bet

    except BetError as e:
        analytics.track(analytics.BET_FINALIZE_ERROR, {'betId': bet_id, 'error': e.message})
        raise _http_error(e)
    except Exception as e:
        logger.exception("Error finalizing bet %s", bet_id)
        raise HTTPException(status_code=500, detail=f"Failed to finalize bet: {str(e)}")


@router.delete("/{bet_id}", status_code=204)
async def delete_bet(
    bet_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    store: BetStore = Depends(get_bet_store),
):
    """Exclusão lógica (deleted_at); não há como desfazer"""
    try:
        store.soft_delete_bet(bet_id, current_user.email)
        analytics.track(analytics.BET_DELETE_SUCCESS, {'betId': bet_id})
        return Response(status_code=204)

    except BetError as e:
        raise _http_error(e)
    except Exception as e:
        logger.exception("Error deleting bet %s", bet_id)
        raise HTTPException(status_code=500, detail=f"Failed to delete bet: {str(e)}")


@votes_router.post("/{vote_id}/toggle", response_model=VoteToggleResponse)
async def toggle_vote(
    vote_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    store: BetStore = Depends(get_bet_store),
):
    """Inclui/exclui um voto da apuração (apenas o criador da aposta)"""
    try:
        considered = store.toggle_vote_consideration(vote_id, current_user.email)
        analytics.track(analytics.VOTE_CONSIDERATION_TOGGLE, {
            'voteId': vote_id,
            'consideredInTally': considered,
        })
        return VoteToggleResponse(vote_id=vote_id, considered_in_tally=considered)

    except BetError as e:
        raise _http_error(e)
    except Exception as e:
        logger.exception("Error toggling vote %s", vote_id)
        raise HTTPException(status_code=500, detail=f"Failed to toggle vote: {str(e)}")
