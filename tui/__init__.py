"""
Textual bindings for preview-config.

This package connects Textual screens and widgets to the page-state registry
(PreviewableMixin), exposes the running App as the navigation root
(AppNavigator) and drives a preview config against an app instance, either
headless or interactively (PreviewDriver).
"""

__version__ = "1.0.0"
