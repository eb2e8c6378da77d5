from .driver import Driver
from .redirect import RedirectChainTracker
from .session import BrowserSession

__all__ = ["Driver", "BrowserSession", "RedirectChainTracker"]
