"""Mixin that lets a Textual screen or widget announce itself to the preview registry."""

from __future__ import annotations

from typing import ClassVar, Hashable, Optional

from core.preview_manager import PreviewManager


class PreviewableMixin:
    """
    Announce this page to the preview registry whenever it is mounted.

    Put the mixin before the Textual base class:

        class CartScreen(PreviewableMixin, Screen):
            ...

    Textual calls handler methods of every class in the MRO, so the page's
    own on_mount keeps working. Announcements are no-ops unless a
    PreviewManager exists, which keeps the mixin safe in production builds.
    """

    # Registry key; defaults to the page class
    PREVIEW_KEY: ClassVar[Optional[Hashable]] = None
    # Register the page object itself as the live instance handle
    PREVIEW_REGISTER_STATE: ClassVar[bool] = True

    def preview_key(self) -> Hashable:
        return self.PREVIEW_KEY if self.PREVIEW_KEY is not None else type(self)

    def announce_preview(self) -> None:
        if not PreviewManager.is_initialized():
            return
        key = self.preview_key()
        # Readiness fires after the next refresh, once this page has rendered
        schedule = self.call_after_refresh  # type: ignore[attr-defined]
        PreviewManager.register_container(key, self.screen, schedule)  # type: ignore[attr-defined]
        if self.PREVIEW_REGISTER_STATE:
            PreviewManager.register_instance(key, self, schedule)

    def _on_mount(self) -> None:
        self.announce_preview()

    def _on_screen_resume(self) -> None:
        # Screens revisited after a pop render again without remounting
        self.announce_preview()
