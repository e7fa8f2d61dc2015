"""
UI Bridge - optional single-slot registration of a rendering provider.
"""

import inspect
from typing import Any, Optional

from crew_common.constants import RESOURCE_UI_PROVIDER
from crew_common.exceptions import DuplicateRegistrationError, ValidationError
from crew_common.logging import get_bound_logger

from .types import ScreenDefinition, UIProvider


class UIBridge:
    """Holds at most one UIProvider and forwards screen rendering to it."""

    def __init__(self, logger=None):
        self._provider: Optional[UIProvider] = None
        self.logger = logger or get_bound_logger("ui_bridge")

    def set_provider(self, provider: UIProvider) -> None:
        """
        Register the UI provider.

        Raises:
            DuplicateRegistrationError: if a provider is already registered
            ValidationError: if mount or render_screen is missing
        """
        if self._provider is not None:
            raise DuplicateRegistrationError(RESOURCE_UI_PROVIDER, type(self._provider).__name__)

        for method in ("mount", "render_screen"):
            if not callable(getattr(provider, method, None)):
                raise ValidationError(RESOURCE_UI_PROVIDER, method)

        self._provider = provider
        self.logger.info(f"UI provider registered: {type(provider).__name__}")

    def get_provider(self) -> Optional[UIProvider]:
        return self._provider

    def render_screen(self, screen: ScreenDefinition) -> Any:
        """
        Render ``screen`` with the registered provider.

        Raises:
            RuntimeError: if no provider is registered
        """
        if self._provider is None:
            raise RuntimeError("No UI provider registered")
        return self._provider.render_screen(screen)

    async def shutdown(self) -> None:
        """Unmount the provider if it supports it, then release it."""
        provider = self._provider
        if provider is None:
            return

        unmount = getattr(provider, "unmount", None)
        if callable(unmount):
            try:
                result = unmount()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self.logger.error(f"Error unmounting UI provider: {e}")

        self._provider = None
