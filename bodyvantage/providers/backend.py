import logging
from typing import Any, Callable, Optional

import httpx

from bodyvantage.core import get_settings
from bodyvantage.schemas import ClickCounterResponse, Profile, ProfileListResponse

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Optional[str]]


class BackendServiceError(Exception):
    """Raised when the directory backend rejects a request. str(e) is the user-facing message."""


class BackendRequestError(BackendServiceError):
    """Raised when the request never reached the backend or never returned (timeout, connection error)."""


class BackendConfigError(BackendServiceError):
    """Raised when a request cannot be built (e.g. an admin route without a token)."""


def _server_message(response: httpx.Response) -> str | None:
    """Business error message from the backend's JSON body, if any."""
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        msg = data.get("message")
        if isinstance(msg, str) and msg.strip():
            return msg.strip()
    return None


def _drop_none(params: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in params.items() if v is not None and v != ""}


class BackendClient:
    """Async client for the directory REST backend.

    Every method raises BackendServiceError (or a subclass) with a flattened,
    human-readable message; structured error codes are not preserved.
    """

    def __init__(
        self,
        base_url: str,
        token_provider: TokenProvider | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self.timeout = timeout
        self._transport = transport

    def _headers(self, auth: bool, multipart: bool = False) -> dict[str, str]:
        # httpx sets the multipart boundary itself
        headers = {} if multipart else {"Content-Type": "application/json"}
        if auth:
            token = self.token_provider() if self.token_provider else None
            if not token:
                raise BackendConfigError("Not authorized, no token.")
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        files: dict[str, tuple[str, bytes, str]] | None = None,
        auth: bool = False,
    ) -> Any:
        headers = self._headers(auth, multipart=files is not None)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                r = await client.request(
                    method,
                    f"{self.base_url}{path}",
                    params=_drop_none(params or {}),
                    json=json,
                    files=files,
                    headers=headers,
                )
                r.raise_for_status()
                if not r.content:
                    return None
                try:
                    return r.json()
                except ValueError as e:
                    raise BackendServiceError("Backend returned unexpected response format.") from e
        except httpx.HTTPStatusError as e:
            message = _server_message(e.response)
            logger.warning(
                "Backend %s %s returned %s: %s",
                method,
                path,
                e.response.status_code,
                message or (e.response.text or "")[:500],
            )
            raise BackendServiceError(
                message or f"Backend returned {e.response.status_code}. Please try again later."
            ) from e
        except httpx.RequestError as e:
            logger.warning("Backend %s %s unreachable: %s", method, path, e)
            raise BackendRequestError(
                "Backend unavailable (timeout or connection error). Please try again later."
            ) from e

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    async def list_profiles(
        self,
        page: int | None = None,
        limit: int | None = None,
        location: str | None = None,
        specialisation: str | None = None,
    ) -> ProfileListResponse:
        data = await self._request(
            "GET",
            "/api/profiles",
            params={"page": page, "limit": limit, "location": location, "specialisation": specialisation},
        )
        try:
            return ProfileListResponse.from_payload(data)
        except ValueError as e:
            raise BackendServiceError("Backend returned unexpected profiles format.") from e

    async def list_profiles_admin(self) -> list[Profile]:
        data = await self._request("GET", "/api/profiles/admin", auth=True)
        try:
            return ProfileListResponse.from_payload(data).profiles
        except ValueError as e:
            raise BackendServiceError("Backend returned unexpected profiles format.") from e

    async def get_profile(self, profile_id: str) -> Profile:
        data = await self._request("GET", f"/api/profile/{profile_id}")
        try:
            return Profile.model_validate(data)
        except ValueError as e:
            raise BackendServiceError("Backend returned unexpected profile format.") from e

    async def get_own_profile(self) -> Any:
        return await self._request("GET", "/api/profile/", auth=True)

    async def create_profile(self) -> Any:
        return await self._request("POST", "/api/profiles", json={}, auth=True)

    async def update_profile(self, user_id: str, profile: dict[str, Any]) -> Any:
        return await self._request("PUT", f"/api/profile/{user_id}", json=profile, auth=True)

    async def delete_profile(self, profile_id: str) -> Any:
        return await self._request("DELETE", f"/api/profiles/admin/{profile_id}", auth=True)

    async def verify_qualification(self, profile_id: str) -> Any:
        return await self._request("PUT", f"/api/profiles/admin/{profile_id}", json={}, auth=True)

    async def delete_review(self, profile_id: str, review_id: str) -> Any:
        return await self._request(
            "DELETE",
            f"/api/profile/review/admin/{profile_id}",
            json={"reviewId": review_id},
            auth=True,
        )

    async def increment_click_counter(self, profile_id: str) -> ClickCounterResponse:
        # Server auto-increments; the client never sends a count
        data = await self._request("PUT", "/api/profile-clicks", json={"_id": profile_id})
        try:
            return ClickCounterResponse.model_validate(data or {})
        except ValueError as e:
            raise BackendServiceError("Backend returned unexpected click counter format.") from e

    async def list_profile_images(self) -> Any:
        return await self._request("GET", "/api/profile-images", auth=True)

    async def list_profile_images_public(self, profile_id: str) -> Any:
        return await self._request("GET", f"/api/profile-images/{profile_id}")

    async def upload_profile_image(
        self, filename: str, content: bytes, content_type: str = "application/octet-stream"
    ) -> Any:
        return await self._request(
            "POST",
            "/api/profileUpload",
            files={"profileImage": (filename, content, content_type)},
            auth=True,
        )

    async def delete_profile_image(self, image_id: str) -> Any:
        return await self._request("DELETE", f"/api/profile-image/{image_id}", json={}, auth=True)

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    async def login(self, email: str, password: str) -> Any:
        """Returns the user record including its token; storing the token is up to the caller."""
        return await self._request("POST", "/api/users/login", json={"email": email, "password": password})

    async def register(self, name: str, email: str, password: str) -> Any:
        return await self._request(
            "POST", "/api/users", json={"name": name, "email": email, "password": password}
        )

    async def get_user(self, user_id: str) -> Any:
        return await self._request("GET", f"/api/users/{user_id}", auth=True)

    async def update_user(self, user: dict[str, Any]) -> Any:
        return await self._request("PUT", "/api/users/profile", json=user, auth=True)

    async def get_public_user_profile(self, user_id: str) -> Any:
        return await self._request("GET", f"/api/user/profile/{user_id}")

    async def request_password_reset(self, email: str) -> Any:
        return await self._request("POST", "/api/user-forgot-password", json={"email": email})

    async def update_password(self, payload: dict[str, Any]) -> Any:
        return await self._request("PUT", "/api/user-update-password", json=payload)

    async def upload_user_image(
        self, filename: str, content: bytes, content_type: str = "application/octet-stream"
    ) -> Any:
        return await self._request(
            "POST",
            "/api/userProfileUpload",
            files={"userProfileImage": (filename, content, content_type)},
            auth=True,
        )

    async def reviewer_login(self, email: str, password: str, user_profile_id: str) -> Any:
        return await self._request(
            "POST",
            "/api/users-review/login",
            json={"email": email, "password": password, "userProfileId": user_profile_id},
        )

    async def reviewer_register(self, name: str, email: str, password: str, user_profile_id: str) -> Any:
        return await self._request(
            "POST",
            "/api/users-review",
            json={"name": name, "email": email, "password": password, "userProfileId": user_profile_id},
        )

    async def get_reviewer(self, reviewer_id: str) -> Any:
        return await self._request("GET", f"/api/reviewer/public/{reviewer_id}")

    # -------------------------------------------------------------------------
    # Users and reviewers (admin)
    # -------------------------------------------------------------------------

    async def list_users(self) -> Any:
        return await self._request("GET", "/api/users", auth=True)

    async def delete_user(self, user_id: str) -> Any:
        return await self._request("DELETE", f"/api/users/{user_id}", auth=True)

    async def set_user_admin(self, user_id: str, is_admin: bool) -> Any:
        return await self._request(
            "PUT",
            f"/api/user/profile/{user_id}",
            json={"id": user_id, "isAdmin": is_admin},
            auth=True,
        )

    async def list_reviewers_admin(self) -> Any:
        return await self._request("GET", "/api/reviewers/admin", auth=True)

    async def delete_reviewer(self, reviewer_id: str) -> Any:
        return await self._request("DELETE", f"/api/reviewer/admin/{reviewer_id}", auth=True)

    async def create_review(self, profile_id: str, review: dict[str, Any]) -> Any:
        return await self._request("POST", f"/api/profiles/{profile_id}/reviews", json=review, auth=True)

    # -------------------------------------------------------------------------
    # Public forms
    # -------------------------------------------------------------------------

    async def send_contact_message(self, name: str, email: str, message: str) -> Any:
        return await self._request(
            "POST",
            "/api/send",
            json={"name": name, "email": email, "message": message},
        )


def get_backend_client(token_provider: TokenProvider | None = None) -> BackendClient:
    s = get_settings()
    if not s.api_base_url:
        raise BackendConfigError("Backend not configured. Set BODYVANTAGE_API_BASE_URL.")
    return BackendClient(
        base_url=s.api_base_url,
        token_provider=token_provider,
        timeout=s.http_timeout_seconds,
    )
