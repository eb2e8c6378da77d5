DEFAULT_TIMEOUT_MS = 15000

DEFAULT_CONFIG = {
    "headless": True,
    "viewport": {"width": 1280, "height": 720},
    "language": "en-US",
    "timeout": DEFAULT_TIMEOUT_MS,
}
