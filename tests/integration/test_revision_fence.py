"""
Integration tests for the revision fence helpers on SQLite.
"""

import pytest

from eventfold.projections import advance_revision, insert_if_absent
from tests.fixtures import carts, fetch_cart

pytestmark = pytest.mark.integration

CART = {"cart_id": "c-1", "client_id": "u-1", "status": "opened", "revision": 0}


class TestInsertIfAbsent:
    @pytest.mark.asyncio
    async def test_inserts_once(self, sink):
        async with sink.begin() as scope:
            assert await insert_if_absent(scope, carts, CART) is True
        async with sink.begin() as scope:
            assert await insert_if_absent(scope, carts, {**CART, "client_id": "u-2"}) is False

        assert (await fetch_cart(sink, "c-1"))["client_id"] == "u-1"


class TestAdvanceRevision:
    """Tests for advance_revision()."""

    @pytest.mark.asyncio
    async def test_advances_next_revision_only(self, sink):
        async with sink.begin() as scope:
            await insert_if_absent(scope, carts, CART)

        async with sink.begin() as scope:
            assert await advance_revision(scope, carts, {"cart_id": "c-1"}, 1, {"status": "x"})

        row = await fetch_cart(sink, "c-1")
        assert (row["revision"], row["status"]) == (1, "x")

    @pytest.mark.asyncio
    async def test_redelivery_is_no_op(self, sink):
        """Applying revision n twice changes the row once."""
        async with sink.begin() as scope:
            await insert_if_absent(scope, carts, CART)
            await advance_revision(scope, carts, {"cart_id": "c-1"}, 1, {"status": "first"})

        async with sink.begin() as scope:
            applied = await advance_revision(
                scope, carts, {"cart_id": "c-1"}, 1, {"status": "second"}
            )

        assert applied is False
        assert (await fetch_cart(sink, "c-1"))["status"] == "first"

    @pytest.mark.asyncio
    async def test_out_of_order_revision_rejected(self, sink):
        async with sink.begin() as scope:
            await insert_if_absent(scope, carts, CART)
            applied = await advance_revision(scope, carts, {"cart_id": "c-1"}, 3)

        assert applied is False
        assert (await fetch_cart(sink, "c-1"))["revision"] == 0

    @pytest.mark.asyncio
    async def test_missing_row(self, sink):
        async with sink.begin() as scope:
            assert await advance_revision(scope, carts, {"cart_id": "nope"}, 1) is False

    @pytest.mark.asyncio
    async def test_empty_key_rejected(self, sink):
        async with sink.begin() as scope:
            with pytest.raises(ValueError):
                await advance_revision(scope, carts, {}, 1)
