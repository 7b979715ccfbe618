"""Shared client constants."""

# Specialisation slots shown on a profile card; empty slots fall back to the default label
SPECIALISATION_SLOTS = 4
DEFAULT_SPECIALISATION = "Personal Trainer"

# Appended to descriptions cut at the card length
ELLIPSIS = "..."

# Rating scale used by the backend
MIN_RATING = 0.0
MAX_RATING = 5.0

# Payload stored for operations whose response has no body (deletes, contact form acks)
EMPTY_SUCCESS_PAYLOAD = True
