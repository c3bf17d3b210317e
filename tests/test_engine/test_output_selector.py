"""Tests for first-fit output selection."""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from helpers import ASSET_HASH, envelope, output_dict

from safe_wallet.config.settings import OutputOrder
from safe_wallet.engine.outputs import OutputSelector
from safe_wallet.errors import InsufficientFunds
from safe_wallet.kernel.amount import UNIT


def _listing(amounts: list[str]):
    outputs = [output_dict(a, i) for i, a in enumerate(amounts)]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=envelope(outputs))

    return handler


class TestSelect:
    async def test_shortest_covering_prefix(self, make_api) -> None:
        selector = OutputSelector(make_api(_listing(["5", "3", "2"])))
        selection = await selector.select(ASSET_HASH, "hash", 6 * UNIT)
        assert [o.amount for o in selection.outputs] == [5 * UNIT, 3 * UNIT]
        assert selection.change == 2 * UNIT
        assert selection.total == 8 * UNIT

    async def test_exact_match_has_no_change(self, make_api) -> None:
        selector = OutputSelector(make_api(_listing(["5", "3", "2"])))
        selection = await selector.select(ASSET_HASH, "hash", 8 * UNIT)
        assert len(selection.outputs) == 2
        assert selection.change == 0

    async def test_listing_order_is_kept(self, make_api) -> None:
        selector = OutputSelector(make_api(_listing(["1", "2", "10"])))
        selection = await selector.select(ASSET_HASH, "hash", 10 * UNIT)
        # A single output of 10 would do, but the prefix is taken as listed.
        assert [o.amount for o in selection.outputs] == [UNIT, 2 * UNIT, 10 * UNIT]
        assert selection.change == 3 * UNIT

    async def test_zero_change_prefix_not_trimmed(self, make_api) -> None:
        selector = OutputSelector(make_api(_listing(["1", "2", "10", "4"])))
        selection = await selector.select(ASSET_HASH, "hash", 13 * UNIT)
        assert len(selection.outputs) == 3
        assert selection.change == 0

    async def test_insufficient(self, make_api) -> None:
        selector = OutputSelector(make_api(_listing(["5", "3", "2"])))
        with pytest.raises(InsufficientFunds) as exc_info:
            await selector.select(ASSET_HASH, "hash", 11 * UNIT)
        assert exc_info.value.available == 10 * UNIT
        assert exc_info.value.requested == 11 * UNIT
        assert exc_info.value.count == 3

    async def test_empty_listing(self, make_api) -> None:
        selector = OutputSelector(make_api(_listing([])))
        with pytest.raises(InsufficientFunds) as exc_info:
            await selector.select(ASSET_HASH, "hash", 1)
        assert exc_info.value.available == 0


class TestPaging:
    async def test_pages_with_sequence_cursor(self, make_api) -> None:
        outputs = [output_dict(a, i) for i, a in enumerate(["1", "1", "1", "1", "1"])]
        offsets: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            query = parse_qs(urlparse(str(request.url)).query)
            offset = int(query["offset"][0])
            limit = int(query["limit"][0])
            offsets.append(offset)
            page = [o for o in outputs if o["sequence"] > offset][:limit]
            return httpx.Response(200, json=envelope(page))

        selector = OutputSelector(make_api(handler), page_limit=2)
        selection = await selector.select(ASSET_HASH, "hash", 5 * UNIT)

        assert len(selection.outputs) == 5
        assert offsets == [0, 2, 4]

    async def test_stops_on_short_page(self, make_api) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200, json=envelope([output_dict("1", 0)]))

        selector = OutputSelector(make_api(handler), page_limit=2)
        with pytest.raises(InsufficientFunds):
            await selector.select(ASSET_HASH, "hash", 5 * UNIT)
        assert calls == 1

    async def test_order_passed_through(self, make_api) -> None:
        orders: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            orders.append(parse_qs(urlparse(str(request.url)).query)["order"][0])
            return httpx.Response(200, json=envelope([output_dict("1", 0)]))

        selector = OutputSelector(make_api(handler), order=OutputOrder.DESC)
        await selector.select(ASSET_HASH, "hash", UNIT)
        assert orders == ["DESC"]
        assert selector.order == OutputOrder.DESC

    async def test_out_of_order_listing_logged(self, make_api, caplog) -> None:
        outputs = [output_dict("1", 0, sequence=9), output_dict("1", 1, sequence=3)]
        selector = OutputSelector(make_api(lambda request: httpx.Response(200, json=envelope(outputs))))
        with caplog.at_level("WARNING", logger="safe_wallet.engine.outputs"):
            selection = await selector.select(ASSET_HASH, "hash", 2 * UNIT)
        assert len(selection.outputs) == 2
        assert "out of ASC order" in caplog.text
