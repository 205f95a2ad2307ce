"""Clerk user lookup"""

import logging
from typing import Dict

import requests

logger = logging.getLogger(__name__)

DEFAULT_CLERK_API = "https://api.clerk.dev/v1/users"
REQUEST_TIMEOUT = 10


class ClerkError(Exception):
    pass


def display_name(user: Dict, user_id: str) -> str:
    """Pick the best human-readable name from a Clerk user payload.

    Precedence: "first last" (trimmed), first email address, username,
    then a synthesized "User <id>" label.
    """
    first_name = user.get('first_name') or ''
    last_name = user.get('last_name') or ''
    full_name = f"{first_name} {last_name}".strip()
    if full_name:
        return full_name

    for email in user.get('email_addresses') or []:
        address = email.get('email_address') if isinstance(email, dict) else None
        if address:
            return address

    username = user.get('username')
    if username:
        return username

    return f"User {user_id}"


def placeholder_name(user_id: str) -> str:
    return f"Unknown User ({user_id})"


class ClerkClient:
    def __init__(self, secret_key: str, api_url: str = DEFAULT_CLERK_API, timeout: float = REQUEST_TIMEOUT):
        if not secret_key:
            raise ClerkError("Clerk secret key is required")

        self.secret_key = secret_key
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout

    def fetch_user(self, user_id: str) -> Dict:
        url = f"{self.api_url}/{user_id}"
        logger.debug(f"🔍 Fetching user: {user_id}")

        try:
            response = requests.get(
                url,
                headers={'Authorization': f'Bearer {self.secret_key}'},
                timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise ClerkError(f"Request for {user_id} failed: {exc}") from exc

        if response.status_code != 200:
            raise ClerkError(f"Clerk API returned status {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise ClerkError(f"Malformed response body for {user_id}: {exc}") from exc

        if not isinstance(data, dict):
            raise ClerkError(f"Unexpected response body for {user_id}")

        return data

    def fetch_user_name(self, user_id: str) -> str:
        return display_name(self.fetch_user(user_id), user_id)
