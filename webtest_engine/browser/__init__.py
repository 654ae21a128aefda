"""Browser launch and application readiness helpers."""

from .server_probe import wait_for_server
from .session import BrowserSession, build_launch_args, launch_browser

__all__ = ["BrowserSession", "build_launch_args", "launch_browser", "wait_for_server"]
