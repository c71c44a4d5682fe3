"""
Demo shop: a small Textual app wired for previews.

    python main.py list examples.demo_shop
    python main.py run examples.demo_shop --config Cart --params admin_with_items
    python main.py run examples.demo_shop --config Profile --params guest --headless --screenshot shots/profile.svg

The module exposes create_app() and create_manager(), the two factories the
CLI looks up by default, plus one preview config per previewable screen.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from textual.app import App, ComposeResult
from textual.screen import Screen
from textual.widgets import Footer, Header, Static

from core.credentials import PreviewTestUser
from core.preview_config import PreviewConfig, PreviewConfigParams
from core.preview_manager import PreviewManager
from tui.previewable import PreviewableMixin


# --- app services -------------------------------------------------------------

class AuthService:
    """Stand-in for a real auth backend."""

    ACCOUNTS = {
        'admin@example.com': 'admin-secret',
        'guest@example.com': 'guest123',
    }

    def __init__(self) -> None:
        self.email: Optional[str] = None

    async def sign_in(self, email: str, password: str) -> None:
        if self.ACCOUNTS.get(email) != password:
            raise PermissionError(f'Invalid credentials for {email}')
        self.email = email

    async def sign_out(self) -> None:
        self.email = None


class CartService:
    def __init__(self) -> None:
        self.items = 0

    def set_item_count(self, count: int) -> None:
        if count < 0:
            raise ValueError('Item count cannot be negative')
        self.items = count


class ShopServices:
    def __init__(self) -> None:
        self.auth = AuthService()
        self.cart = CartService()


# --- screens --------------------------------------------------------------------

class CartScreen(PreviewableMixin, Screen):
    BINDINGS = [("escape", "app.pop_screen", "Back")]

    def __init__(self) -> None:
        super().__init__()
        self.coupon = ''

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(id="cart_summary")
        yield Footer()

    def on_mount(self) -> None:
        self.refresh_summary()

    def on_screen_resume(self) -> None:
        self.refresh_summary()

    def apply_coupon(self, code: str) -> None:
        self.coupon = code
        self.refresh_summary()

    def summary_text(self) -> str:
        services = self.app.services
        who = services.auth.email or 'guest'
        text = f"{who}: {services.cart.items} item(s) in cart"
        if self.coupon:
            text += f" (coupon {self.coupon})"
        return text

    def refresh_summary(self) -> None:
        # ScreenResume can arrive before compose has finished on first push
        summary = self.query("#cart_summary")
        if summary:
            summary.first(Static).update(self.summary_text())


class ProfileScreen(PreviewableMixin, Screen):
    BINDINGS = [("escape", "app.pop_screen", "Back")]

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(id="profile_email")
        yield Footer()

    def on_mount(self) -> None:
        self.refresh_profile()

    def on_screen_resume(self) -> None:
        self.refresh_profile()

    def profile_text(self) -> str:
        email = self.app.services.auth.email
        return f"Signed in as {email}" if email else "Not signed in"

    def refresh_profile(self) -> None:
        email = self.query("#profile_email")
        if email:
            email.first(Static).update(self.profile_text())


class ShopApp(App):
    TITLE = "Demo Shop"
    SCREENS = {"cart": CartScreen, "profile": ProfileScreen}
    BINDINGS = [
        ("c", "push_screen('cart')", "Cart"),
        ("p", "push_screen('profile')", "Profile"),
        ("q", "quit", "Quit"),
    ]

    def __init__(self, services: Optional[ShopServices] = None) -> None:
        super().__init__()
        self.services = services or ShopServices()

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static("Welcome to the demo shop", id="welcome")
        yield Footer()


# --- preview manager ----------------------------------------------------------

class ShopPreviewManager(PreviewManager):
    """Preview helpers that drive the shop's own services."""

    def __init__(self, services: ShopServices, config=None, logger=None) -> None:
        super().__init__(config, logger=logger)
        self.services = services

    @property
    def test_users(self) -> Dict[str, PreviewTestUser]:
        users = {
            'admin': PreviewTestUser(email='admin@example.com', password='admin-secret'),
            'guest': PreviewTestUser(email='guest@example.com', password='guest123'),
        }
        # [USER.<key>] config sections add to (or replace) the built-in users
        users.update(super().test_users)
        return users

    async def login_test_user(self, key: str) -> None:
        user = self.get_test_user(key)
        await self.services.auth.sign_in(user.email, user.resolved_password)
        self.log_auth('login', {'user': key, 'email': user.email})

    async def logout_test_user(self) -> None:
        await self.services.auth.sign_out()
        self.log_auth('logout', {})

    def set_cart_item_count(self, count: int) -> None:
        self.services.cart.set_item_count(count)


# --- preview configs ----------------------------------------------------------

@dataclass(frozen=True)
class CartParams(PreviewConfigParams):
    user_key: Optional[str] = None
    cart_items: int = 0
    coupon: str = ''


class CartPreviewConfig(PreviewConfig[CartScreen, CartParams]):
    async def execute(self, params: CartParams) -> None:
        manager = self.manager
        await self.navigator.reset_to_root()
        await manager.logout_test_user()
        if params.user_key:
            await manager.login_test_user(params.user_key)
        manager.set_cart_item_count(params.cart_items)
        await self.navigator.navigate('cart')

        screen = await manager.get_page_state(CartScreen)
        screen.apply_coupon(params.coupon)

    @property
    def admin_with_items_params(self) -> CartParams:
        return CartParams(user_key='admin', cart_items=3)

    @property
    def guest_empty_params(self) -> CartParams:
        return CartParams()

    @property
    def discounted_params(self) -> CartParams:
        return CartParams(user_key='guest', cart_items=1, coupon='SPRING10')


@dataclass(frozen=True)
class ProfileParams(PreviewConfigParams):
    user_key: Optional[str] = None


class ProfilePreviewConfig(PreviewConfig[ProfileScreen, ProfileParams]):
    async def execute(self, params: ProfileParams) -> None:
        manager = self.manager
        await self.navigator.reset_to_root()
        await manager.logout_test_user()
        if params.user_key:
            await manager.login_test_user(params.user_key)
        await self.navigator.navigate('profile')
        await manager.get_page_context(ProfileScreen)

    @property
    def admin_params(self) -> ProfileParams:
        return ProfileParams(user_key='admin')

    @property
    def guest_params(self) -> ProfileParams:
        return ProfileParams(user_key='guest')

    @property
    def signed_out_params(self) -> ProfileParams:
        return ProfileParams()


# --- factories used by the CLI ------------------------------------------------

def create_app() -> ShopApp:
    return ShopApp()


def create_manager(app: ShopApp, config=None, logger=None) -> ShopPreviewManager:
    return ShopPreviewManager(app.services, config=config, logger=logger)
