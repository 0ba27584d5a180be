"""
煤炉（Mercari）销售记录导入

用户从浏览器开发者工具复制"销售记录"接口的 cURL 命令，服务端解析出 URL 和请求头，
按 limit=100 分页拉取全部记录，每条记录生成一个不带明细的订单：

- 订单号 = 商品ID（item_id）
- 名称 / 图片 = 商品名称 / 缩略图
- 营业额 = sales_profit（已扣手续费和运费）
- 运费 = seller_shipping_fee
- 成交时间 = transaction_finished_at（Unix 秒，UTC）

订单号已存在时按 skip_existing 跳过或计为失败；成本之后通过订单明细补充。
"""

import shlex
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import httpx
from pydantic import ValidationError

from app.core.config import settings
from app.core.exceptions import InvalidArgumentError, ServiceError
from app.core.logging_config import get_logger
from app.models import Order
from app.schemas.marketplace import ImportResult, SoldHistory
from app.schemas.order import OrderCreate
from app.services.fulfillment import OrderFulfillmentEngine
from app.services.ledger import exists_active

logger = get_logger(__name__)

# 由 httpx 自行处理的请求头
SKIPPED_HEADERS = {"content-length", "host", "accept-encoding"}


def parse_curl_command(curl_command: str) -> Tuple[str, Dict[str, str]]:
    """
    解析 cURL 命令，返回 (URL, 请求头)

    支持单引号/双引号、-H / --header、行尾续行符。
    """
    try:
        tokens = shlex.split(curl_command.replace("\\\n", " "))
    except ValueError as e:
        raise InvalidArgumentError(f"无法解析 cURL 命令: {e}")

    if not tokens or tokens[0] != "curl":
        raise InvalidArgumentError("不是有效的 cURL 命令")

    url = ""
    headers: Dict[str, str] = {}
    i = 1
    while i < len(tokens):
        token = tokens[i]
        if token in ("-H", "--header") and i + 1 < len(tokens):
            key, sep, value = tokens[i + 1].partition(":")
            if sep and key.strip():
                headers[key.strip()] = value.strip()
            i += 2
            continue
        if token.startswith(("http://", "https://")) and not url:
            url = token
        elif token == "--url" and i + 1 < len(tokens):
            url = tokens[i + 1]
            i += 1
        i += 1

    if not url:
        raise InvalidArgumentError("无法解析 cURL 命令中的 URL")

    logger.info(f"解析到 URL: {url}")
    logger.info(f"解析到 {len(headers)} 个 headers")
    return url, headers


def history_to_order(history: SoldHistory) -> OrderCreate:
    item = history.item
    return OrderCreate(
        order_no=item.item_id,
        name=item.name or "",
        image_url=item.photo_thumbnail_url or None,
        revenue=history.sales_profit,
        shipping_fee=history.seller_shipping_fee,
        transaction_time=datetime.fromtimestamp(
            history.transaction_finished_at, tz=timezone.utc
        ).replace(tzinfo=None),
    )


class MarketplaceImporter:

    def __init__(
        self,
        db,
        client: Optional[httpx.AsyncClient] = None,
        page_size: Optional[int] = None,
    ):
        self.db = db
        self.orders = OrderFulfillmentEngine(db)
        self.client = client
        self.page_size = page_size or settings.MARKETPLACE_PAGE_SIZE

    # ==================== 拉取 ====================

    async def _fetch_page(
        self,
        client: httpx.AsyncClient,
        url: httpx.URL,
        headers: Dict[str, str],
        offset: int,
    ) -> Tuple[List[dict], int]:
        response = await client.get(url.copy_set_param("offset", str(offset)), headers=headers)
        response.raise_for_status()
        data = (response.json() or {}).get("data") or {}
        return data.get("sold_histories") or [], int(data.get("total_count") or 0)

    async def fetch_histories(self, curl_command: str) -> Tuple[List[dict], int]:
        """按页拉取全部销售记录，返回 (记录, total_count)"""
        raw_url, raw_headers = parse_curl_command(curl_command)
        url = httpx.URL(raw_url).copy_set_param("limit", str(self.page_size))
        headers = {k: v for k, v in raw_headers.items() if k.lower() not in SKIPPED_HEADERS}

        client = self.client or httpx.AsyncClient(timeout=settings.MARKETPLACE_TIMEOUT_SECONDS)
        try:
            histories, total = await self._fetch_page(client, url, headers, 0)
            logger.info(f"总共需要导入 {total} 条订单")

            offset = self.page_size
            while len(histories) < total and offset < total + self.page_size:
                logger.info(f"正在获取 offset={offset} 的数据...")
                page, _ = await self._fetch_page(client, url, headers, offset)
                if not page:
                    break
                histories.extend(page)
                offset += self.page_size
        finally:
            if self.client is None:
                await client.aclose()

        logger.info(f"共获取到 {len(histories)} 条销售记录")
        return histories, total

    # ==================== 导入 ====================

    async def import_histories(
        self,
        histories: List,
        skip_existing: bool = True,
        total: Optional[int] = None,
    ) -> ImportResult:
        """逐条创建订单，单条失败只记入结果，不影响其他记录"""
        result = ImportResult(total=total if total is not None else len(histories))

        for raw in histories:
            try:
                history = raw if isinstance(raw, SoldHistory) else SoldHistory.model_validate(raw)
            except ValidationError as e:
                result.failed += 1
                result.errors.append(f"销售记录格式错误: {e.errors()[0].get('msg')}")
                continue

            if history.item is None or not history.item.item_id:
                result.failed += 1
                result.errors.append("销售记录缺少商品信息")
                continue

            order_no = history.item.item_id
            if skip_existing and await exists_active(self.db, Order, Order.order_no == order_no):
                result.skipped += 1
                continue

            try:
                await self.orders.create_order(history_to_order(history))
                result.success += 1
            except (ServiceError, ValidationError) as e:
                result.failed += 1
                result.errors.append(f"订单 {order_no}: {e}")
                logger.warning(f"导入订单失败: {order_no}: {e}")

        logger.info(
            f"煤炉导入完成: 共 {result.total}, 成功 {result.success}, "
            f"跳过 {result.skipped}, 失败 {result.failed}"
        )
        return result

    async def import_from_curl(self, curl_command: str, skip_existing: bool = True) -> ImportResult:
        try:
            histories, total = await self.fetch_histories(curl_command)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"调用煤炉接口失败: {e}")
            return ImportResult(errors=[f"无法获取煤炉接口响应: {e}"])
        return await self.import_histories(histories, skip_existing=skip_existing, total=total)
