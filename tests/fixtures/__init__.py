"""
Shared test fixtures for the eventfold library.

This module provides:
- The shopping cart domain (events, registry, state, evolve, decisions)
- A cart details read model with a fence-protected projection handler
- Recording and failing projection handlers

Usage:
    from tests.fixtures import CART_EVENTS, evolve, open_cart, project_cart_details
"""

from tests.fixtures.cart import (
    CART_EVENTS,
    CONFIRMED,
    OPENED,
    AddProductItem,
    Cart,
    CartConfirmed,
    CartOpened,
    ConfirmCart,
    OpenCart,
    PricedProductItem,
    ProductItemAddedToCart,
    ProductItemRemovedFromCart,
    RemoveProductItem,
    add_product_item,
    confirm_cart,
    evolve,
    open_cart,
    remove_product_item,
    stream_name,
)
from tests.fixtures.projections import (
    FailingHandler,
    ProjectedEvents,
    SlowHandler,
    cart_items,
    carts,
    create_read_model,
    fetch_cart,
    fetch_items,
    project_cart_details,
)

__all__ = [
    # Cart domain
    "CART_EVENTS",
    "CONFIRMED",
    "OPENED",
    "Cart",
    "CartOpened",
    "ProductItemAddedToCart",
    "ProductItemRemovedFromCart",
    "CartConfirmed",
    "PricedProductItem",
    "OpenCart",
    "AddProductItem",
    "RemoveProductItem",
    "ConfirmCart",
    "open_cart",
    "add_product_item",
    "remove_product_item",
    "confirm_cart",
    "evolve",
    "stream_name",
    # Read model
    "carts",
    "cart_items",
    "create_read_model",
    "project_cart_details",
    "fetch_cart",
    "fetch_items",
    "ProjectedEvents",
    "FailingHandler",
    "SlowHandler",
]
