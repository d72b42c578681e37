__all__ = [
    "__version__",
    "AdminConfig",
    "build_config",
    "Dispatcher",
    "DispatchResult",
    "derive_withdrawal_credentials",
    "SETTINGS",
    "get_setting",
]

__version__ = "0.1.0"

from .config import AdminConfig, build_config  # noqa: E402, F401
from .credentials import derive_withdrawal_credentials  # noqa: E402, F401
from .dispatcher import Dispatcher, DispatchResult  # noqa: E402, F401
from .settings import SETTINGS, get_setting  # noqa: E402, F401
