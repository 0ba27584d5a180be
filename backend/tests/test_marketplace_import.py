"""煤炉销售记录导入"""

from datetime import datetime

import httpx
import pytest

from app.core.exceptions import InvalidArgumentError
from app.schemas.order import OrderCreate
from app.services.fulfillment import OrderFulfillmentEngine
from app.services.marketplace_import import MarketplaceImporter, parse_curl_command

CURL = (
    "curl 'https://api.mercari.jp/v2/transactions/sold?limit=20&offset=0&status=done' \\\n"
    "  -H 'accept: application/json, text/plain, */*' \\\n"
    "  -H 'authorization: Bearer token-abc' \\\n"
    "  -H 'dpop: eyJhbGciOi:xyz' \\\n"
    "  -H 'host: api.mercari.jp' \\\n"
    "  --compressed"
)


def history(item_id, profit=1500, shipping=210, finished_at=1760000000):
    return {
        "item": {"item_id": item_id, "name": f"商品 {item_id}", "photo_thumbnail_url": f"https://img/{item_id}.jpg"},
        "price": 2000,
        "sales_fee": 200,
        "seller_shipping_fee": shipping,
        "sales_profit": profit,
        "transaction_finished_at": finished_at,
    }


class TestParseCurl:

    def test_url_and_headers(self):
        url, headers = parse_curl_command(CURL)
        assert url.startswith("https://api.mercari.jp/v2/transactions/sold")
        assert headers["authorization"] == "Bearer token-abc"
        # 值里的冒号保留
        assert headers["dpop"] == "eyJhbGciOi:xyz"

    def test_double_quotes(self):
        url, headers = parse_curl_command('curl "https://example.com/a?b=1" -H "x-token: 1"')
        assert url == "https://example.com/a?b=1"
        assert headers == {"x-token": "1"}

    @pytest.mark.parametrize("command", ["", "wget https://example.com", "curl -H 'a: b'"])
    def test_rejects_bad_commands(self, command):
        with pytest.raises(InvalidArgumentError):
            parse_curl_command(command)


class TestImportFromCurl:
    """分页拉取并生成不带明细的订单"""

    async def test_paginates_and_creates_orders(self, db):
        pages = {
            "0": [history("m1"), history("m2")],
            "2": [history("m3")],
        }
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            offset = request.url.params["offset"]
            return httpx.Response(200, json={
                "result": "OK",
                "data": {"sold_histories": pages.get(offset, []), "total_count": 3},
            })

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await MarketplaceImporter(db, client=client, page_size=2).import_from_curl(CURL)

        assert (result.total, result.success, result.skipped, result.failed) == (3, 3, 0, 0)
        assert [r.url.params["offset"] for r in requests] == ["0", "2"]
        assert all(r.url.params["limit"] == "2" for r in requests)
        assert requests[0].headers["authorization"] == "Bearer token-abc"

        orders = await OrderFulfillmentEngine(db).list_orders()
        m1 = next(o for o in orders if o.order_no == "m1")
        assert m1.name == "商品 m1"
        assert m1.image_url == "https://img/m1.jpg"
        assert m1.revenue == 1500.0
        assert m1.shipping_fee == 210.0
        assert m1.total_cost == 0.0
        assert m1.transaction_time == datetime(2025, 10, 9, 8, 53, 20)

    async def test_http_error_reported(self, db):
        def handler(request):
            return httpx.Response(401, json={"error": "unauthorized"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await MarketplaceImporter(db, client=client).import_from_curl(CURL)

        assert result.success == 0
        assert len(result.errors) == 1


class TestImportHistories:

    async def test_skip_existing(self, db):
        await OrderFulfillmentEngine(db).create_order(OrderCreate(
            order_no="m2", transaction_time=datetime(2026, 10, 1),
        ))

        result = await MarketplaceImporter(db).import_histories([history("m1"), history("m2")])

        assert (result.total, result.success, result.skipped, result.failed) == (2, 1, 1, 0)

    async def test_existing_counted_as_failure_without_skip(self, db):
        await OrderFulfillmentEngine(db).create_order(OrderCreate(
            order_no="m2", transaction_time=datetime(2026, 10, 1),
        ))

        result = await MarketplaceImporter(db).import_histories(
            [history("m1"), history("m2")], skip_existing=False,
        )

        assert (result.success, result.skipped, result.failed) == (1, 0, 1)
        assert "m2" in result.errors[0]

    async def test_history_without_item(self, db):
        result = await MarketplaceImporter(db).import_histories([{"sales_profit": 100}])
        assert result.failed == 1
        assert result.errors == ["销售记录缺少商品信息"]
