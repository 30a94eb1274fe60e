import base64
import logging
from typing import Optional

import httpx
from fastapi import Request

from exceptions import NotFoundError
from user_profile.schemas import ServerAdminTokenResponse, UserProfile

logger = logging.getLogger("collegemate.user_profile")


class UserProfileServiceError(Exception):
    """The user API answered with something other than a profile or a 404."""


def encode_email(email: str) -> str:
    return base64.urlsafe_b64encode(email.encode("utf-8")).decode("ascii").rstrip("=")


class UserProfileService:
    """Client for the user API's profile lookup.

    The server admin token is renewed once per call when the user API rejects
    it, then the lookup is retried a single time.
    """

    def __init__(
            self,
            base_url: str,
            server_admin_key: str,
            client: Optional[httpx.AsyncClient] = None,
            timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.server_admin_key = server_admin_key
        self.server_admin_token: Optional[str] = None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self):
        await self.client.aclose()

    async def renew_server_admin_token(self) -> str:
        response = await self.client.get(
            f"{self.base_url}/auth/login",
            headers={"X-SERVER-KEY": self.server_admin_key},
        )
        if response.status_code != 200:
            raise UserProfileServiceError(
                f"Fail on serverAdminToken renewal (status {response.status_code})"
            )
        self.server_admin_token = ServerAdminTokenResponse(**response.json()).serverAdminToken
        logger.info("Renewed server admin token")
        return self.server_admin_token

    async def _fetch_profile(self, encoded_email: str) -> httpx.Response:
        return await self.client.get(
            f"{self.base_url}/user/profile/{encoded_email}",
            headers={"X-SERVER-TOKEN": self.server_admin_token or ""},
        )

    async def get_profile(self, email: str) -> UserProfile:
        encoded_email = encode_email(email)
        response = await self._fetch_profile(encoded_email)

        if response.status_code in (401, 403):
            await self.renew_server_admin_token()
            response = await self._fetch_profile(encoded_email)

        if response.status_code == 404:
            raise NotFoundError(f"User {email} not found")
        if response.status_code != 200:
            raise UserProfileServiceError(
                f"Fail on retrieving user profile (status {response.status_code})"
            )

        return UserProfile(**{**response.json(), "email": email})


async def startup_profile_service(app):
    settings = app.state.settings
    app.state.profile_service = UserProfileService(
        settings.user_api_base_url,
        settings.server_admin_key,
        timeout=settings.user_api_timeout,
    )


async def shutdown_profile_service(app):
    await app.state.profile_service.aclose()


def get_profile_service(request: Request) -> UserProfileService:
    return request.app.state.profile_service
