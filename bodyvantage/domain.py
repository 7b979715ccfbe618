"""
Domain enums for the directory client.
Single source of truth for request lifecycle states and operation keys.
"""

from enum import Enum
from typing import Literal, get_args

# -----------------------------------------------------------------------------
# 1. Request lifecycle
# -----------------------------------------------------------------------------

RequestStatus = Literal["idle", "pending", "succeeded", "failed"]

REQUEST_STATUSES = frozenset(get_args(RequestStatus))


class LifecycleEvent(str, Enum):
    """Events a RequestStateMachine reacts to."""
    BEGIN = "begin"
    SUCCEED = "succeed"
    FAIL = "fail"
    RESET = "reset"


# -----------------------------------------------------------------------------
# 2. Operation keys (one RequestState per key)
# -----------------------------------------------------------------------------

class Operation(str, Enum):
    """Backend operations tracked by the request state table."""
    PROFILES = "profiles"
    PROFILES_ADMIN = "profiles_admin"
    PROFILE_BY_ID = "profile_by_id"
    PROFILE_OF_LOGGED_IN_USER = "profile_of_logged_in_user"
    PROFILE_CREATE = "profile_create"
    PROFILE_UPDATE = "profile_update"
    PROFILE_DELETE = "profile_delete"
    PROFILE_VERIFY_QUALIFICATION = "profile_verify_qualification"
    PROFILE_DELETE_REVIEW = "profile_delete_review"
    PROFILE_CLICK_COUNTER = "profile_click_counter"
    PROFILE_IMAGES = "profile_images"
    PROFILE_IMAGES_PUBLIC = "profile_images_public"
    PROFILE_IMAGE_UPLOAD = "profile_image_upload"
    PROFILE_IMAGE_DELETE = "profile_image_delete"
    USER_LOGIN = "user_login"
    USER_REGISTER = "user_register"
    USER_DETAILS = "user_details"
    USER_UPDATE_PROFILE = "user_update_profile"
    USER_PUBLIC_PROFILE = "user_public_profile"
    USER_FORGOT_PASSWORD = "user_forgot_password"
    USER_UPDATE_PASSWORD = "user_update_password"
    USER_IMAGE_UPLOAD = "user_image_upload"
    REVIEWER_LOGIN = "reviewer_login"
    REVIEWER_REGISTER = "reviewer_register"
    REVIEWER_DETAILS = "reviewer_details"
    USERS = "users"
    USER_DELETE = "user_delete"
    USER_ADD_REMOVE_ADMIN = "user_add_remove_admin"
    REVIEWERS_ADMIN = "reviewers_admin"
    REVIEWER_DELETE = "reviewer_delete"
    REVIEW_CREATE = "review_create"
    CONTACT_FORM = "contact_form"
