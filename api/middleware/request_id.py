"""
Request ID 中间件
生成或透传追踪ID，并绑定到 structlog 上下文
"""
import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Request ID 追踪中间件

    request_id 写入 request.state（错误响应里回显）与 structlog 上下文，
    并在响应头中返回。
    """

    HEADER_NAME = "X-Request-ID"

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(self.HEADER_NAME) or str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            client_ip=self._client_ip(request),
        )

        response = await call_next(request)
        response.headers[self.HEADER_NAME] = request_id
        return response

    @staticmethod
    def _client_ip(request: Request) -> str:
        # 代理场景下优先取 X-Forwarded-For 的第一个地址
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
        return request.headers.get("X-Real-IP") or (request.client.host if request.client else "unknown")
