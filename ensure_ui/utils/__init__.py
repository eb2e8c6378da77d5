from .get_log import GetLog
from .log_icon import icon

__all__ = ["GetLog", "icon"]
