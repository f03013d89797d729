# =====================================
# backend/services/bet_store.py - Bet Store
# =====================================
"""
Operações de domínio sobre apostas e votos.

As checagens de dono/visibilidade daqui são uma segunda linha de defesa: a
fonte de verdade são as políticas RLS do Supabase. Cada mutação é uma única
escrita; toda leitura vai ao backend (sem cache).
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from database.repositories import BetRepository
from models.schemas import Bet, BetCreate, CurrentUser, Settlement, Vote
from services import settlement
from services.exceptions import (
    AlreadyFinalized,
    BetClosed,
    BetDeleted,
    Forbidden,
    InvalidOption,
    LoginRequired,
    NotFound,
    ValidationError,
)

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _validation_message(error: PydanticValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in item['loc'])}: {item['msg']}"
        for item in error.errors()
    )


class BetStore:
    def __init__(self, repository: BetRepository, clock: Callable[[], datetime] = utcnow):
        self.repository = repository
        self.clock = clock

    # =====================================
    # Apostas
    # =====================================

    def create_bet(self, data: Union[BetCreate, dict], creator: Optional[CurrentUser]) -> Bet:
        if creator is None or not creator.email:
            raise ValidationError("Creator identity is required")

        if not isinstance(data, BetCreate):
            try:
                data = BetCreate(**data)
            except PydanticValidationError as e:
                raise ValidationError(_validation_message(e))

        row = self.repository.insert_bet({
            'id': str(uuid.uuid4()),
            'title': data.title,
            'description': data.description,
            'options': data.options,
            'stake_amount': data.stake_amount,
            'closing_at': data.closing_at,
            'creator_name': data.creator_name or creator.display_name,
            'creator_email': creator.email,
            'visibility': data.visibility.value,
            'allow_anonymous_voting': data.allow_anonymous_voting,
        })
        bet = Bet(**row)

        logger.info("Bet %s created by %s", bet.id, bet.creator_email)
        return bet

    def get_bet(self, bet_id: str) -> Bet:
        row = self.repository.fetch_bet(bet_id, include_deleted=True)

        if row is None:
            raise NotFound("Bet not found")

        bet = Bet(**row)
        if bet.is_deleted:
            raise BetDeleted("Bet was deleted")

        return bet

    def list_bets(self, requester_email: Optional[str] = None) -> List[Bet]:
        return [Bet(**row) for row in self.repository.list_bets(requester_email)]

    def list_votes(self, bet_id: str) -> List[Vote]:
        self.get_bet(bet_id)
        return [Vote(**row) for row in self.repository.fetch_votes(bet_id)]

    def get_bet_detail(self, bet_id: str) -> Tuple[Bet, List[Vote], Settlement]:
        bet = self.get_bet(bet_id)
        votes = [Vote(**row) for row in self.repository.fetch_votes(bet_id)]
        return bet, votes, settlement.settle(bet, votes)

    # =====================================
    # Votos
    # =====================================

    def cast_vote(
        self,
        bet_id: str,
        chosen_option: str,
        voter_name: Optional[str] = None,
        user: Optional[CurrentUser] = None,
    ) -> Vote:
        bet = self.get_bet(bet_id)

        if not settlement.accepts_votes(bet, self.clock()):
            logger.warning("Vote rejected on closed bet %s", bet_id)
            raise BetClosed("Bet has ended")

        if bet.allow_anonymous_voting:
            voter_identifier = (voter_name or '').strip()
            if not voter_identifier and user is not None:
                voter_identifier = user.display_name
        else:
            if user is None:
                raise LoginRequired("Login required to vote on this bet")
            voter_identifier = user.display_name

        if not voter_identifier or not chosen_option:
            raise ValidationError("Missing required fields")

        if chosen_option not in bet.options:
            raise InvalidOption("Invalid option")

        row = self.repository.insert_vote({
            'id': str(uuid.uuid4()),
            'bet_id': bet.id,
            'voter_identifier': voter_identifier,
            'chosen_option': chosen_option,
            'considered_in_tally': True,
        })
        vote = Vote(**row)

        logger.info("Vote %s registered on bet %s", vote.id, bet.id)
        return vote

    def toggle_vote_consideration(self, vote_id: str, requester_email: Optional[str]) -> bool:
        row = self.repository.fetch_vote(vote_id)
        if row is None:
            raise NotFound("Vote not found")

        vote = Vote(**row)
        bet = self.get_bet(vote.bet_id)
        self._require_creator(bet, requester_email)

        updated = self.repository.set_vote_consideration(vote.id, not vote.considered_in_tally)
        if updated is None:
            raise NotFound("Vote not found")

        new_state = bool(updated['considered_in_tally'])
        logger.info("Vote %s considered_in_tally=%s", vote.id, new_state)
        return new_state

    # =====================================
    # Ações do criador
    # =====================================

    def finalize_bet(self, bet_id: str, result: str, requester_email: Optional[str]) -> Bet:
        bet = self.get_bet(bet_id)
        self._require_creator(bet, requester_email)

        if bet.is_finalized:
            raise AlreadyFinalized("Bet already finalized")

        if result not in bet.options:
            raise InvalidOption("Invalid option")

        # Check e escrita num único update condicional (where resultado_final is null)
        row = self.repository.set_final_result(bet.id, result)
        if row is None:
            current = self.get_bet(bet_id)
            if current.is_finalized:
                logger.warning("Concurrent finalization lost on bet %s", bet_id)
                raise AlreadyFinalized("Bet already finalized")
            raise NotFound("Bet not found")

        finalized = Bet(**row)
        logger.info("Bet %s finalized with result %r", finalized.id, finalized.final_result)
        return finalized

    def soft_delete_bet(self, bet_id: str, requester_email: Optional[str]) -> None:
        row = self.repository.fetch_bet(bet_id, include_deleted=True)
        if row is None or row.get('deleted_at') is not None:
            raise NotFound("Bet not found")

        bet = Bet(**row)
        self._require_creator(bet, requester_email)

        if self.repository.mark_deleted(bet.id, self.clock()) is None:
            raise NotFound("Bet not found")

        logger.info("Bet %s deleted by %s", bet.id, requester_email)

    def _require_creator(self, bet: Bet, requester_email: Optional[str]) -> None:
        if not requester_email or requester_email != bet.creator_email:
            logger.warning("Forbidden creator action on bet %s by %s", bet.id, requester_email)
            raise Forbidden("Only the bet creator can do this")
