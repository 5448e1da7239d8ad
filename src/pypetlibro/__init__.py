"""pypetlibro - Async Python client for PetLibro pet feeders."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pypetlibro")
except PackageNotFoundError:
    __version__ = "0+local"
from pypetlibro.cache import CacheEntry, CacheStats, RequestCache
from pypetlibro.client import PetlibroClient
from pypetlibro.config import PetlibroConfig
from pypetlibro.exceptions import (
    PetlibroApiError,
    PetlibroAuthError,
    PetlibroConfigError,
    PetlibroError,
    PetlibroNetworkError,
    PetlibroNotFoundError,
    PetlibroRequestError,
    PetlibroStateError,
)
from pypetlibro.facade import CachedPetlibroClient
from pypetlibro.feed_stop import FeedStopChain, StopStrategy, is_placeholder_feed_id
from pypetlibro.models import (
    AuthToken,
    DeviceRecord,
    DeviceSnapshot,
    ErrorKind,
    ManualFeedSession,
    Result,
)
from pypetlibro.session import Session, SessionManager
from pypetlibro.tray import (
    RotationPlan,
    TrayPlanner,
    compute_steps,
    percentage_to_position,
    position_to_percentage,
)

__all__ = [
    "__version__",
    "AuthToken",
    "CacheEntry",
    "CacheStats",
    "CachedPetlibroClient",
    "DeviceRecord",
    "DeviceSnapshot",
    "ErrorKind",
    "FeedStopChain",
    "ManualFeedSession",
    "PetlibroApiError",
    "PetlibroAuthError",
    "PetlibroClient",
    "PetlibroConfig",
    "PetlibroConfigError",
    "PetlibroError",
    "PetlibroNetworkError",
    "PetlibroNotFoundError",
    "PetlibroRequestError",
    "PetlibroStateError",
    "RequestCache",
    "Result",
    "RotationPlan",
    "Session",
    "SessionManager",
    "StopStrategy",
    "TrayPlanner",
    "compute_steps",
    "is_placeholder_feed_id",
    "percentage_to_position",
    "position_to_percentage",
]
