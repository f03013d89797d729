# =====================================
# backend/services/settlement.py - Tally & Prize Split
# =====================================
"""
Cálculo puro do resultado de uma aposta (sem I/O).

Só entram na conta os votos com `considered_in_tally=True`. Antes da
finalização apenas o placar (tally) tem significado; pool e prêmio são
reportados para a exibição corrente.
"""
import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional

from models.schemas import Bet, BetStatus, Settlement, Vote

# Prefixo numérico aceito pelo parseFloat do navegador
_LEADING_NUMBER = re.compile(r'^(\d+\.?\d*|\.\d+)')
_NOT_DIGIT_OR_COMMA = re.compile(r'[^0-9,]')


def considered(votes: Iterable[Vote]) -> List[Vote]:
    return [vote for vote in votes if vote.considered_in_tally]


def tally(options: List[str], votes: Iterable[Vote]) -> Dict[str, int]:
    """Contagem por opção, na ordem das opções. Empates não são desfeitos."""
    counted = considered(votes)
    return {
        option: sum(1 for vote in counted if vote.chosen_option == option)
        for option in options
    }


def parse_stake_amount(text: Optional[str]) -> Decimal:
    """
    Converte o valor da aposta ("R$ 10,00") em Decimal.

    Remove tudo que não for dígito ou vírgula, troca a PRIMEIRA vírgula por
    ponto e lê o maior prefixo numérico. Entrada vazia ou ilegível vale 0.
    "1.000,50" -> 1000.50, mas "1,000,50" -> 1.000.
    """
    if not text:
        return Decimal(0)

    cleaned = _NOT_DIGIT_OR_COMMA.sub('', text).replace(',', '.', 1)
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return Decimal(0)

    try:
        return Decimal(match.group(1))
    except InvalidOperation:
        return Decimal(0)


def total_pool(stake_amount: str, votes: Iterable[Vote]) -> Decimal:
    # Cada voto custa uma unidade de aposta, inclusive os perdedores
    return len(considered(votes)) * parse_stake_amount(stake_amount)


def winners(final_result: Optional[str], votes: Iterable[Vote]) -> List[Vote]:
    if final_result is None:
        return []
    return [vote for vote in considered(votes) if vote.chosen_option == final_result]


def prize_per_winner(pool: Decimal, winner_count: int) -> Decimal:
    # Sem vencedores o pool fica sem destino (não há reembolso)
    if winner_count <= 0:
        return Decimal(0)
    return pool / winner_count


def settle(bet: Bet, votes: List[Vote]) -> Settlement:
    pool = total_pool(bet.stake_amount, votes)
    winning_votes = winners(bet.final_result, votes)

    return Settlement(
        tally=tally(bet.options, votes),
        total_votes=len(considered(votes)),
        stake_amount=parse_stake_amount(bet.stake_amount),
        total_pool=pool,
        winners=winning_votes,
        prize_per_winner=prize_per_winner(pool, len(winning_votes)),
        is_finalized=bet.is_finalized,
    )


def ensure_aware(moment: datetime) -> datetime:
    """Datas sem fuso vindas do banco são tratadas como UTC"""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def accepts_votes(bet: Bet, now: datetime) -> bool:
    return not bet.is_finalized and ensure_aware(now) < ensure_aware(bet.closing_at)


def bet_status(bet: Bet, now: datetime) -> BetStatus:
    if bet.is_deleted:
        return BetStatus.DELETED
    if bet.is_finalized:
        return BetStatus.FINALIZED
    if not accepts_votes(bet, now):
        return BetStatus.CLOSED
    return BetStatus.OPEN
