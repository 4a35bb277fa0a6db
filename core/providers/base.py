"""
Contract for device providers that link an athlete account via OAuth 2.0 + PKCE.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List


class IntegrationProvider(ABC):
    provider_id: str = ""
    display_name: str = ""

    @property
    def enabled(self) -> bool:
        """False while the provider's client credentials are not configured."""
        return False

    @abstractmethod
    def get_oauth_authorize_url(self, state: str, callback_uri: str, code_challenge: str) -> str:
        ...

    @abstractmethod
    def exchange_code_for_token(self, code: str, callback_uri: str, code_verifier: str) -> Dict:
        """
        Single POST to the token endpoint.

        Returns the raw token payload (access_token, refresh_token, expires_in, scope).
        Raises requests.HTTPError when the provider rejects the code.
        """

    @abstractmethod
    def get_external_user_id(self, access_token: str) -> str:
        ...

    @abstractmethod
    def refresh_token(self, refresh_token: str) -> Dict:
        ...

    def fetch_activities(self, access_token: str, after: datetime) -> List[Dict]:
        raise NotImplementedError(f"{self.provider_id} does not expose an activity pull API")
