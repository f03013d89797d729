# =====================================
# backend/utils/analytics.py - Product Analytics
# =====================================
"""
Eventos de produto (funil de criação, voto e finalização).

O núcleo nunca depende disso: `track` apenas repassa para o tracker
configurado e qualquer falha é logada e descartada.
"""
import logging
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

BET_CREATION_SUCCESS = 'Bet Creation Success'
BET_CREATION_ERROR = 'Bet Creation Error'
BET_VIEW = 'Bet View'
BET_VOTE_SUCCESS = 'Bet Vote Success'
BET_VOTE_ERROR = 'Bet Vote Error'
BET_FINALIZE_SUCCESS = 'Bet Finalize Success'
BET_FINALIZE_ERROR = 'Bet Finalize Error'
BET_DELETE_SUCCESS = 'Bet Delete Success'
VOTE_CONSIDERATION_TOGGLE = 'Vote Consideration Toggle'

Tracker = Callable[[str, Dict[str, Any]], None]


def log_tracker(event_name: str, properties: Dict[str, Any]) -> None:
    logger.info("analytics event=%s properties=%s", event_name, properties)


_tracker: Tracker = log_tracker


def set_tracker(tracker: Optional[Tracker]) -> None:
    global _tracker
    _tracker = tracker or log_tracker


def track(event_name: str, properties: Optional[Dict[str, Any]] = None) -> None:
    try:
        _tracker(event_name, properties or {})
    except Exception as e:
        logger.warning("Analytics tracking failed for %s: %s", event_name, e)


def bet_properties(bet) -> Dict[str, Any]:
    return {
        'betId': bet.id,
        'betTitle': bet.title,
        'betType': bet.visibility.value,
        'optionsCount': len(bet.options),
        'betValue': bet.stake_amount,
        'creatorEmail': bet.creator_email,
        'isOpen': bet.final_result is None,
    }


def vote_properties(vote) -> Dict[str, Any]:
    return {
        'betId': vote.bet_id,
        'voterName': vote.voter_identifier,
        'selectedOption': vote.chosen_option,
    }
