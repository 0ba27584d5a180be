"""
业务异常

服务层只抛出这里定义的异常，不关心 HTTP；
由 register_exception_handlers 统一转换为 {"detail": ..., "code": ...} 响应，
与路由里直接 raise HTTPException 的响应格式保持一致。
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """业务异常基类"""

    status_code = 400
    code = "SERVICE_ERROR"

    def __init__(self, message: str, ctx: Optional[Dict[str, Any]] = None):
        self.message = message
        self.ctx = ctx or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"detail": self.message, "code": self.code}
        if self.ctx:
            body["ctx"] = self.ctx
        return body


class NotFoundError(ServiceError):
    """引用的记录不存在或已删除"""

    status_code = 404
    code = "NOT_FOUND"


class AlreadyExistsError(ServiceError):
    """名称/单号重复"""

    status_code = 409
    code = "ALREADY_EXISTS"


class InvalidArgumentError(ServiceError):
    """参数不合法（数量<=0、库存为负等）"""

    status_code = 400
    code = "INVALID_ARGUMENT"


class InvalidOperationError(ServiceError):
    """当前状态下不允许的操作"""

    status_code = 400
    code = "INVALID_OPERATION"


class InsufficientStockError(InvalidOperationError):
    """库存不足"""

    code = "INSUFFICIENT_STOCK"

    def __init__(self, inventory_id: int, available: int, requested: int, product_id: Optional[int] = None):
        self.inventory_id = inventory_id
        self.available = available
        self.requested = requested
        if product_id is not None:
            message = f"库存不足：商品 ID {product_id}，可用库存 {available}，需要 {requested}"
        else:
            message = f"库存不足：可用库存 {available}，需要 {requested}"
        super().__init__(
            message,
            ctx={"inventory_id": inventory_id, "available": available, "requested": requested},
        )


class ReferencedError(ServiceError):
    """记录仍被引用（库存被订单引用、进货单下有库存等），不能修改或删除"""

    status_code = 409
    code = "REFERENCED"


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    return value


def register_exception_handlers(app: FastAPI) -> None:
    """应用启动时调用一次"""

    @app.exception_handler(ServiceError)
    async def _service_error_handler(request: Request, exc: ServiceError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
        else:
            logger.warning(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=_jsonable(exc.to_dict()))
