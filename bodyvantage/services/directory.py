"""Directory service context: the object views receive instead of a global store.

Holds the request state table, the backend client, the search engine, the hero image
selector and the profiles pagination. Every backend operation runs through
``RequestStateMachine.run`` under its own ``Operation`` key; mutations that change an
admin listing refresh that listing afterwards.
"""

import logging
from typing import Any, Optional

from bodyvantage.core import get_settings
from bodyvantage.domain import Operation
from bodyvantage.providers import BackendClient, get_backend_client, get_image_probe
from bodyvantage.providers.backend import TokenProvider
from bodyvantage.schemas import Profile, ProfileListResponse, RequestState, SearchResults
from bodyvantage.services.image_pool import BrokenImageCache, ImagePoolSelector
from bodyvantage.services.pagination import PaginationController
from bodyvantage.services.request_state import CancelToken, RequestStateMachine
from bodyvantage.services.search import SearchEngine

logger = logging.getLogger(__name__)


class DirectoryService:
    def __init__(
        self,
        backend: BackendClient,
        image_selector: ImagePoolSelector,
        states: RequestStateMachine | None = None,
        search_engine: SearchEngine | None = None,
        page_size: int = 12,
    ):
        self.backend = backend
        self.image_selector = image_selector
        self.states = states or RequestStateMachine()
        self.search_engine = search_engine or SearchEngine()
        self.page_size = page_size
        self.pagination = PaginationController(self._fetch_page, page_size=page_size)
        self._location: Optional[str] = None
        self._specialisation: Optional[str] = None
        self._hero_image: Optional[str] = None

    # -------------------------------------------------------------------------
    # State access
    # -------------------------------------------------------------------------

    def state(self, key: Operation | str) -> RequestState:
        return self.states.get(key)

    def reset(self, key: Operation | str) -> None:
        self.states.reset(key)

    def profiles(self) -> list[Profile]:
        """Profiles of the last successful listing fetch, [] otherwise."""
        state = self.states.get(Operation.PROFILES)
        if state.succeeded and isinstance(state.payload, ProfileListResponse):
            return list(state.payload.profiles)
        return []

    # -------------------------------------------------------------------------
    # Public listing, search and hero image
    # -------------------------------------------------------------------------

    async def load_profiles(
        self,
        page: int = 1,
        *,
        location: str | None = None,
        specialisation: str | None = None,
        cancel: CancelToken | None = None,
    ) -> RequestState:
        self._location = location
        self._specialisation = specialisation
        return await self._load_page(page, cancel=cancel)

    async def _load_page(self, page: int, cancel: CancelToken | None = None) -> RequestState:
        state = await self.states.run(
            Operation.PROFILES,
            lambda: self.backend.list_profiles(
                page=page,
                limit=self.page_size,
                location=self._location,
                specialisation=self._specialisation,
            ),
            cancel=cancel,
        )
        if state.succeeded and isinstance(state.payload, ProfileListResponse):
            self.pagination.update_from_response(state.payload)
        return state

    async def _fetch_page(self, page: int) -> RequestState:
        return await self._load_page(page)

    async def change_page(self, requested: int) -> Optional[int]:
        """Bounds-checked page change followed by a re-fetch; None when out of bounds."""
        return await self.pagination.go_to(requested)

    def search(self, query: str | None) -> list[Profile]:
        return self.search_engine.search(query, self.profiles())

    def search_results(self, query: str | None) -> SearchResults:
        return self.search_engine.result_cards(query, self.profiles())

    async def hero_image(self) -> Optional[str]:
        """Background image for the search view; stable while the candidate set is unchanged."""
        selection = await self.image_selector.select_hero_image(self.profiles(), self._hero_image)
        self._hero_image = selection
        return selection

    async def load_profile(self, profile_id: str, cancel: CancelToken | None = None) -> RequestState:
        return await self.states.run(
            Operation.PROFILE_BY_ID, lambda: self.backend.get_profile(profile_id), cancel=cancel
        )

    async def record_profile_click(self, profile_id: str, cancel: CancelToken | None = None) -> RequestState:
        return await self.states.run(
            Operation.PROFILE_CLICK_COUNTER,
            lambda: self.backend.increment_click_counter(profile_id),
            cancel=cancel,
        )

    async def load_profile_images_public(self, profile_id: str, cancel: CancelToken | None = None) -> RequestState:
        return await self.states.run(
            Operation.PROFILE_IMAGES_PUBLIC,
            lambda: self.backend.list_profile_images_public(profile_id),
            cancel=cancel,
        )

    async def send_contact_message(
        self, name: str, email: str, message: str, cancel: CancelToken | None = None
    ) -> RequestState:
        return await self.states.run(
            Operation.CONTACT_FORM,
            lambda: self.backend.send_contact_message(name, email, message),
            cancel=cancel,
        )

    # -------------------------------------------------------------------------
    # Signed-in member
    # -------------------------------------------------------------------------

    async def load_own_profile(self, cancel: CancelToken | None = None) -> RequestState:
        return await self.states.run(
            Operation.PROFILE_OF_LOGGED_IN_USER, self.backend.get_own_profile, cancel=cancel
        )

    async def create_profile(self, cancel: CancelToken | None = None) -> RequestState:
        return await self.states.run(Operation.PROFILE_CREATE, self.backend.create_profile, cancel=cancel)

    async def update_profile(
        self, user_id: str, profile: dict[str, Any], cancel: CancelToken | None = None
    ) -> RequestState:
        state = await self.states.run(
            Operation.PROFILE_UPDATE,
            lambda: self.backend.update_profile(user_id, profile),
            cancel=cancel,
        )
        if state.succeeded:
            await self.load_own_profile(cancel=cancel)
        return state

    async def load_profile_images(self, cancel: CancelToken | None = None) -> RequestState:
        return await self.states.run(Operation.PROFILE_IMAGES, self.backend.list_profile_images, cancel=cancel)

    async def create_review(
        self, profile_id: str, review: dict[str, Any], cancel: CancelToken | None = None
    ) -> RequestState:
        return await self.states.run(
            Operation.REVIEW_CREATE,
            lambda: self.backend.create_review(profile_id, review),
            cancel=cancel,
        )

    async def upload_profile_image(
        self,
        filename: str,
        content: bytes,
        content_type: str = "application/octet-stream",
        cancel: CancelToken | None = None,
    ) -> RequestState:
        state = await self.states.run(
            Operation.PROFILE_IMAGE_UPLOAD,
            lambda: self.backend.upload_profile_image(filename, content, content_type),
            cancel=cancel,
        )
        if state.succeeded:
            await self.load_own_profile(cancel=cancel)
        return state

    async def delete_profile_image(self, image_id: str, cancel: CancelToken | None = None) -> RequestState:
        state = await self.states.run(
            Operation.PROFILE_IMAGE_DELETE, lambda: self.backend.delete_profile_image(image_id), cancel=cancel
        )
        if state.succeeded:
            await self.load_own_profile(cancel=cancel)
        return state

    # -------------------------------------------------------------------------
    # Accounts (token storage belongs to the caller's token provider)
    # -------------------------------------------------------------------------

    async def login(self, email: str, password: str, cancel: CancelToken | None = None) -> RequestState:
        return await self.states.run(
            Operation.USER_LOGIN, lambda: self.backend.login(email, password), cancel=cancel
        )

    async def register(
        self, name: str, email: str, password: str, cancel: CancelToken | None = None
    ) -> RequestState:
        return await self.states.run(
            Operation.USER_REGISTER, lambda: self.backend.register(name, email, password), cancel=cancel
        )

    async def load_user_details(self, user_id: str, cancel: CancelToken | None = None) -> RequestState:
        return await self.states.run(
            Operation.USER_DETAILS, lambda: self.backend.get_user(user_id), cancel=cancel
        )

    async def update_user_profile(self, user: dict[str, Any], cancel: CancelToken | None = None) -> RequestState:
        """PUT the signed-in user's account, then reload its details when the record carries an _id."""
        state = await self.states.run(
            Operation.USER_UPDATE_PROFILE, lambda: self.backend.update_user(user), cancel=cancel
        )
        user_id = user.get("_id")
        if state.succeeded and user_id:
            await self.load_user_details(user_id, cancel=cancel)
        return state

    async def load_public_user_profile(self, user_id: str, cancel: CancelToken | None = None) -> RequestState:
        return await self.states.run(
            Operation.USER_PUBLIC_PROFILE, lambda: self.backend.get_public_user_profile(user_id), cancel=cancel
        )

    async def request_password_reset(self, email: str, cancel: CancelToken | None = None) -> RequestState:
        return await self.states.run(
            Operation.USER_FORGOT_PASSWORD, lambda: self.backend.request_password_reset(email), cancel=cancel
        )

    async def update_password(self, payload: dict[str, Any], cancel: CancelToken | None = None) -> RequestState:
        return await self.states.run(
            Operation.USER_UPDATE_PASSWORD, lambda: self.backend.update_password(payload), cancel=cancel
        )

    async def upload_user_image(
        self,
        user_id: str,
        filename: str,
        content: bytes,
        content_type: str = "application/octet-stream",
        cancel: CancelToken | None = None,
    ) -> RequestState:
        state = await self.states.run(
            Operation.USER_IMAGE_UPLOAD,
            lambda: self.backend.upload_user_image(filename, content, content_type),
            cancel=cancel,
        )
        if state.succeeded:
            await self.load_user_details(user_id, cancel=cancel)
        return state

    async def reviewer_login(
        self, email: str, password: str, user_profile_id: str, cancel: CancelToken | None = None
    ) -> RequestState:
        return await self.states.run(
            Operation.REVIEWER_LOGIN,
            lambda: self.backend.reviewer_login(email, password, user_profile_id),
            cancel=cancel,
        )

    async def reviewer_register(
        self, name: str, email: str, password: str, user_profile_id: str, cancel: CancelToken | None = None
    ) -> RequestState:
        return await self.states.run(
            Operation.REVIEWER_REGISTER,
            lambda: self.backend.reviewer_register(name, email, password, user_profile_id),
            cancel=cancel,
        )

    async def load_reviewer_details(self, reviewer_id: str, cancel: CancelToken | None = None) -> RequestState:
        return await self.states.run(
            Operation.REVIEWER_DETAILS, lambda: self.backend.get_reviewer(reviewer_id), cancel=cancel
        )

    # -------------------------------------------------------------------------
    # Admin moderation
    # -------------------------------------------------------------------------

    async def load_profiles_admin(self, cancel: CancelToken | None = None) -> RequestState:
        return await self.states.run(Operation.PROFILES_ADMIN, self.backend.list_profiles_admin, cancel=cancel)

    async def delete_profile(self, profile_id: str, cancel: CancelToken | None = None) -> RequestState:
        state = await self.states.run(
            Operation.PROFILE_DELETE, lambda: self.backend.delete_profile(profile_id), cancel=cancel
        )
        if state.succeeded:
            await self.load_profiles_admin(cancel=cancel)
        return state

    async def verify_qualification(self, profile_id: str, cancel: CancelToken | None = None) -> RequestState:
        state = await self.states.run(
            Operation.PROFILE_VERIFY_QUALIFICATION,
            lambda: self.backend.verify_qualification(profile_id),
            cancel=cancel,
        )
        if state.succeeded:
            await self.load_profiles_admin(cancel=cancel)
        return state

    async def delete_review(
        self, profile_id: str, review_id: str, cancel: CancelToken | None = None
    ) -> RequestState:
        state = await self.states.run(
            Operation.PROFILE_DELETE_REVIEW,
            lambda: self.backend.delete_review(profile_id, review_id),
            cancel=cancel,
        )
        if state.succeeded:
            await self.load_profiles_admin(cancel=cancel)
        return state

    async def load_users(self, cancel: CancelToken | None = None) -> RequestState:
        return await self.states.run(Operation.USERS, self.backend.list_users, cancel=cancel)

    async def delete_user(self, user_id: str, cancel: CancelToken | None = None) -> RequestState:
        state = await self.states.run(
            Operation.USER_DELETE, lambda: self.backend.delete_user(user_id), cancel=cancel
        )
        if state.succeeded:
            await self.load_users(cancel=cancel)
        return state

    async def set_user_admin(self, user_id: str, is_admin: bool, cancel: CancelToken | None = None) -> RequestState:
        state = await self.states.run(
            Operation.USER_ADD_REMOVE_ADMIN,
            lambda: self.backend.set_user_admin(user_id, is_admin),
            cancel=cancel,
        )
        if state.succeeded:
            await self.load_users(cancel=cancel)
        return state

    async def load_reviewers_admin(self, cancel: CancelToken | None = None) -> RequestState:
        return await self.states.run(Operation.REVIEWERS_ADMIN, self.backend.list_reviewers_admin, cancel=cancel)

    async def delete_reviewer(self, reviewer_id: str, cancel: CancelToken | None = None) -> RequestState:
        state = await self.states.run(
            Operation.REVIEWER_DELETE, lambda: self.backend.delete_reviewer(reviewer_id), cancel=cancel
        )
        if state.succeeded:
            await self.load_reviewers_admin(cancel=cancel)
        return state


def get_directory_service(
    token_provider: TokenProvider | None = None,
    broken_images: BrokenImageCache | None = None,
) -> DirectoryService:
    s = get_settings()
    return DirectoryService(
        backend=get_backend_client(token_provider),
        image_selector=ImagePoolSelector(get_image_probe(), broken=broken_images),
        states=RequestStateMachine(discard_stale_completions=s.discard_stale_completions),
        search_engine=SearchEngine(description_max_chars=s.description_max_chars),
        page_size=s.profiles_page_size,
    )
