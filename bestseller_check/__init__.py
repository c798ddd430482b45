"""Best-seller price check for a dynamic e-commerce storefront."""

__version__ = "1.0.0"
