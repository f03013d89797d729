# =====================================
# frontend/backend_client.py - API Client
# =====================================
import logging
from typing import Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


class BackendError(Exception):
    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


class BackendClient:
    """Chamadas HTTP do frontend Flask para a API FastAPI"""

    def __init__(self, base_url: str, access_token: Optional[str] = None, session=None):
        self.base_url = base_url.rstrip('/')
        self.access_token = access_token
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        if not self.access_token:
            return {}
        return {'Authorization': f'Bearer {self.access_token}'}

    def _request(self, method: str, path: str, **kwargs):
        url = f'{self.base_url}{path}'
        try:
            response = self.session.request(
                method, url, headers=self._headers(), timeout=DEFAULT_TIMEOUT, **kwargs
            )
        except requests.RequestException as e:
            logger.error("Backend request %s %s failed: %s", method, path, e)
            raise BackendError(503, str(e))

        if response.status_code >= 400:
            try:
                detail = response.json().get('detail', response.text)
            except ValueError:
                detail = response.text
            raise BackendError(response.status_code, str(detail))

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def list_bets(self) -> List[Dict]:
        return self._request('GET', '/api/bets') or []

    def get_bet(self, bet_id: str) -> Dict:
        return self._request('GET', f'/api/bets/{bet_id}')

    def create_bet(self, payload: Dict) -> Dict:
        return self._request('POST', '/api/bets', json=payload)

    def vote(self, bet_id: str, option: str, voter_name: Optional[str] = None) -> Dict:
        return self._request(
            'POST', f'/api/bets/{bet_id}/votes',
            json={'option': option, 'voterName': voter_name},
        )

    def finalize(self, bet_id: str, result: str) -> Dict:
        return self._request('POST', f'/api/bets/{bet_id}/finalize', json={'result': result})

    def delete(self, bet_id: str) -> None:
        self._request('DELETE', f'/api/bets/{bet_id}')

    def toggle_vote(self, vote_id: str) -> Dict:
        return self._request('POST', f'/api/votes/{vote_id}/toggle')
