from .backend import (
    BackendClient,
    BackendConfigError,
    BackendRequestError,
    BackendServiceError,
    get_backend_client,
)
from .image_probe import HttpImageProbe, ImageProbe, get_image_probe

__all__ = [
    "BackendClient",
    "BackendConfigError",
    "BackendRequestError",
    "BackendServiceError",
    "get_backend_client",
    "HttpImageProbe",
    "ImageProbe",
    "get_image_probe",
]
