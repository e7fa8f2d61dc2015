"""
Screen Registry - keyed storage of screen descriptors.
"""

from typing import Dict, List, Optional

from crew_common.constants import RESOURCE_SCREEN
from crew_common.exceptions import DuplicateRegistrationError, ValidationError
from crew_common.logging import get_bound_logger

from .types import ScreenDefinition, Unsubscribe


def _non_empty_str(value) -> bool:
    return isinstance(value, str) and value.strip() != ""


class ScreenRegistry:
    """In-memory registry for screens. Insertion order is preserved."""

    def __init__(self, logger=None):
        self._screens: Dict[str, ScreenDefinition] = {}
        self.logger = logger or get_bound_logger("screen_registry")

    def register_screen(self, screen: ScreenDefinition) -> Unsubscribe:
        """
        Register a screen and return a closure that unregisters it.

        Raises:
            ValidationError: if id, title or component is missing or malformed
            DuplicateRegistrationError: if the id is already registered
        """
        self._validate(screen)

        if screen.id in self._screens:
            raise DuplicateRegistrationError(RESOURCE_SCREEN, screen.id)

        self._screens[screen.id] = screen
        self.logger.debug(f"Registered screen: {screen.id}")

        screen_id = screen.id

        def unregister() -> None:
            self.unregister_screen(screen_id)

        return unregister

    def _validate(self, screen) -> None:
        screen_id = getattr(screen, "id", None)
        if not _non_empty_str(screen_id):
            raise ValidationError(RESOURCE_SCREEN, "id")
        if not _non_empty_str(getattr(screen, "title", None)):
            raise ValidationError(RESOURCE_SCREEN, "title", screen_id)
        component = getattr(screen, "component", None)
        if component is None or (isinstance(component, str) and not component.strip()):
            raise ValidationError(RESOURCE_SCREEN, "component", screen_id)

    def unregister_screen(self, screen_id: str) -> bool:
        """Remove a screen. Returns False if it was not registered."""
        if self._screens.pop(screen_id, None) is None:
            return False
        self.logger.debug(f"Unregistered screen: {screen_id}")
        return True

    def get_screen(self, screen_id: str) -> Optional[ScreenDefinition]:
        """Retrieve a screen or None."""
        return self._screens.get(screen_id)

    def get_all_screens(self) -> List[ScreenDefinition]:
        """List screens in insertion order."""
        return list(self._screens.values())

    def clear(self) -> None:
        self._screens.clear()

    def __len__(self) -> int:
        return len(self._screens)

    def __contains__(self, screen_id: object) -> bool:
        return screen_id in self._screens
