"""Page Object Model for storefront automation."""
from .base_page import BasePage
from .category_page import CategoryPage
from .home_page import StorefrontHomePage
from .navigation_menu import HamburgerMenu

__all__ = ['BasePage', 'CategoryPage', 'HamburgerMenu', 'StorefrontHomePage']
