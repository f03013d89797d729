# =====================================
# backend/database/repositories.py - Bet Repositories
# =====================================
"""
Acesso às tabelas `apostas` (apostas) e `apostas_feitas` (votos).

`BetRepository` define as capacidades usadas pelo BetStore. Há duas
implementações: `SupabaseBetRepository` (produção) e
`InMemoryBetRepository` (testes e execução local sem Supabase).
"""
import copy
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from services.exceptions import PersistenceError

logger = logging.getLogger(__name__)

BETS_TABLE = 'apostas'
VOTES_TABLE = 'apostas_feitas'

# Campo do modelo -> coluna no banco
BET_COLUMNS = {
    'id': 'id',
    'title': 'titulo',
    'description': 'descricao',
    'options': 'opcoes',
    'stake_amount': 'valor_aposta',
    'closing_at': 'data_encerramento',
    'creator_name': 'nome_criador',
    'creator_email': 'email_criador',
    'visibility': 'visibilidade',
    'allow_anonymous_voting': 'permitir_sem_login',
    'final_result': 'resultado_final',
    'deleted_at': 'deleted_at',
    'created_at': 'created_at',
}

VOTE_COLUMNS = {
    'id': 'id',
    'bet_id': 'aposta_id',
    'voter_identifier': 'nome_apostador',
    'chosen_option': 'opcao_escolhida',
    'created_at': 'created_at',
    'considered_in_tally': 'considerar',
}


def to_row(data: Dict[str, Any], columns: Dict[str, str]) -> Dict[str, Any]:
    row = {}
    for field, value in data.items():
        if field not in columns:
            continue
        if isinstance(value, datetime):
            value = value.isoformat()
        elif hasattr(value, 'value'):
            value = value.value
        row[columns[field]] = value
    return row


def from_row(row: Dict[str, Any], columns: Dict[str, str]) -> Dict[str, Any]:
    return {field: row.get(column) for field, column in columns.items() if column in row}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BetRepository(ABC):
    """Capacidades de persistência; todas retornam dicts no formato do modelo"""

    @abstractmethod
    def insert_bet(self, data: Dict[str, Any]) -> Dict[str, Any]:
        ...

    @abstractmethod
    def fetch_bet(self, bet_id: str, include_deleted: bool = False) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def list_bets(self, requester_email: Optional[str] = None) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    def set_final_result(self, bet_id: str, result: str) -> Optional[Dict[str, Any]]:
        """Update condicional: só grava se resultado_final ainda for null"""

    @abstractmethod
    def mark_deleted(self, bet_id: str, when: datetime) -> Optional[Dict[str, Any]]:
        """Update condicional: só grava se deleted_at ainda for null"""

    @abstractmethod
    def insert_vote(self, data: Dict[str, Any]) -> Dict[str, Any]:
        ...

    @abstractmethod
    def fetch_votes(self, bet_id: str) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    def fetch_vote(self, vote_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def set_vote_consideration(self, vote_id: str, considered: bool) -> Optional[Dict[str, Any]]:
        ...


class SupabaseBetRepository(BetRepository):
    def __init__(self, client):
        self.client = client

    def _execute(self, query, action: str):
        try:
            return query.execute()
        except Exception as e:
            logger.error("Supabase %s failed: %s", action, e)
            raise PersistenceError(str(e))

    def _first_bet(self, result) -> Optional[Dict[str, Any]]:
        if not result.data:
            return None
        return from_row(result.data[0], BET_COLUMNS)

    def insert_bet(self, data):
        result = self._execute(
            self.client.table(BETS_TABLE).insert(to_row(data, BET_COLUMNS)),
            'insert bet',
        )
        if not result.data:
            raise PersistenceError("Failed to create bet")
        return from_row(result.data[0], BET_COLUMNS)

    def fetch_bet(self, bet_id, include_deleted=False):
        query = self.client.table(BETS_TABLE).select('*').eq('id', bet_id)
        if not include_deleted:
            query = query.is_('deleted_at', 'null')
        return self._first_bet(self._execute(query, 'fetch bet'))

    def list_bets(self, requester_email=None):
        query = self.client.table(BETS_TABLE).select('*').is_('deleted_at', 'null')

        if requester_email:
            query = query.or_(
                f'visibilidade.eq.public,'
                f'and(visibilidade.eq.private,email_criador.eq.{requester_email})'
            )
        else:
            query = query.eq('visibilidade', 'public')

        result = self._execute(query.order('created_at', desc=True), 'list bets')
        return [from_row(row, BET_COLUMNS) for row in result.data or []]

    def set_final_result(self, bet_id, result):
        query = self.client.table(BETS_TABLE)\
            .update({'resultado_final': result})\
            .eq('id', bet_id)\
            .is_('resultado_final', 'null')\
            .is_('deleted_at', 'null')
        return self._first_bet(self._execute(query, 'finalize bet'))

    def mark_deleted(self, bet_id, when):
        query = self.client.table(BETS_TABLE)\
            .update({'deleted_at': when.isoformat()})\
            .eq('id', bet_id)\
            .is_('deleted_at', 'null')
        return self._first_bet(self._execute(query, 'delete bet'))

    def insert_vote(self, data):
        result = self._execute(
            self.client.table(VOTES_TABLE).insert(to_row(data, VOTE_COLUMNS)),
            'insert vote',
        )
        if not result.data:
            raise PersistenceError("Failed to register vote")
        return from_row(result.data[0], VOTE_COLUMNS)

    def fetch_votes(self, bet_id):
        query = self.client.table(VOTES_TABLE)\
            .select('*')\
            .eq('aposta_id', bet_id)\
            .order('created_at')
        result = self._execute(query, 'fetch votes')
        return [from_row(row, VOTE_COLUMNS) for row in result.data or []]

    def fetch_vote(self, vote_id):
        result = self._execute(
            self.client.table(VOTES_TABLE).select('*').eq('id', vote_id),
            'fetch vote',
        )
        if not result.data:
            return None
        return from_row(result.data[0], VOTE_COLUMNS)

    def set_vote_consideration(self, vote_id, considered):
        result = self._execute(
            self.client.table(VOTES_TABLE).update({'considerar': considered}).eq('id', vote_id),
            'toggle vote',
        )
        if not result.data:
            return None
        return from_row(result.data[0], VOTE_COLUMNS)


class InMemoryBetRepository(BetRepository):
    """Fake em memória com a mesma semântica do Supabase (sem cache)"""

    def __init__(self, clock=_utcnow):
        self.clock = clock
        self.bets: Dict[str, Dict[str, Any]] = {}
        self.votes: Dict[str, Dict[str, Any]] = {}

    def insert_bet(self, data):
        bet = dict(data)
        bet.setdefault('id', str(uuid.uuid4()))
        bet.setdefault('created_at', self.clock())
        bet.setdefault('final_result', None)
        bet.setdefault('deleted_at', None)
        self.bets[bet['id']] = bet
        return copy.deepcopy(bet)

    def fetch_bet(self, bet_id, include_deleted=False):
        bet = self.bets.get(bet_id)
        if bet is None or (bet['deleted_at'] is not None and not include_deleted):
            return None
        return copy.deepcopy(bet)

    def list_bets(self, requester_email=None):
        def visible(bet):
            if bet['deleted_at'] is not None:
                return False
            if bet['visibility'] == 'public':
                return True
            return bool(requester_email) and bet['creator_email'] == requester_email

        rows = [copy.deepcopy(bet) for bet in self.bets.values() if visible(bet)]
        return sorted(rows, key=lambda bet: bet['created_at'], reverse=True)

    def set_final_result(self, bet_id, result):
        bet = self.bets.get(bet_id)
        if bet is None or bet['final_result'] is not None or bet['deleted_at'] is not None:
            return None
        bet['final_result'] = result
        return copy.deepcopy(bet)

    def mark_deleted(self, bet_id, when):
        bet = self.bets.get(bet_id)
        if bet is None or bet['deleted_at'] is not None:
            return None
        bet['deleted_at'] = when
        return copy.deepcopy(bet)

    def insert_vote(self, data):
        vote = dict(data)
        vote.setdefault('id', str(uuid.uuid4()))
        vote.setdefault('created_at', self.clock())
        vote.setdefault('considered_in_tally', True)
        self.votes[vote['id']] = vote
        return copy.deepcopy(vote)

    def fetch_votes(self, bet_id):
        rows = [copy.deepcopy(vote) for vote in self.votes.values() if vote['bet_id'] == bet_id]
        return sorted(rows, key=lambda vote: vote['created_at'])

    def fetch_vote(self, vote_id):
        vote = self.votes.get(vote_id)
        return copy.deepcopy(vote) if vote else None

    def set_vote_consideration(self, vote_id, considered):
        vote = self.votes.get(vote_id)
        if vote is None:
            return None
        vote['considered_in_tally'] = considered
        return copy.deepcopy(vote)
