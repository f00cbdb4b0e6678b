"""
Catalog Client - fetches the available node kinds from the backend.
节点目录客户端 —— 从后端获取可用的节点类型。

The catalog is read once when the editor starts and then treated as a static
list. The engine itself never calls it.
目录在编辑器启动时读取一次，之后作为静态列表使用；引擎本身从不调用它。
"""

from __future__ import annotations

import logging

import httpx
from pydantic import TypeAdapter, ValidationError

import config
from schema import NodeKind

logger = logging.getLogger(__name__)

# Used when the backend is unreachable
# 后端不可达时使用的默认节点类型
DEFAULT_NODE_KINDS: list[NodeKind] = [
    NodeKind(id="data-source", name="Data Source"),
    NodeKind(id="transformer", name="Transformer"),
    NodeKind(id="model", name="Model"),
    NodeKind(id="sink", name="Sink"),
]

_NODE_KIND_LIST = TypeAdapter(list[NodeKind])


class CatalogError(Exception):
    """Raised when the node catalog cannot be fetched or parsed.
    获取或解析节点目录失败时抛出。"""


class CatalogClient:
    """
    Thin async wrapper around GET /api/nodes.
    GET /api/nodes 的轻量异步封装。
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or config.BACKEND_URL).rstrip("/")
        self.timeout = timeout or config.CATALOG_TIMEOUT
        self._transport = transport  # 测试时注入 httpx.MockTransport

    async def fetch_node_types(self) -> list[NodeKind]:
        """
        Return the node kinds served by the backend.
        返回后端提供的节点类型列表。
        """
        url = f"{self.base_url}/api/nodes"
        logger.debug("[Catalog] GET %s", url)
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.get(url)
            except httpx.HTTPError as exc:
                raise CatalogError(f"Failed to fetch node types: {exc}") from exc

        if response.is_error:
            raise CatalogError(f"Failed to fetch node types: {response.reason_phrase}")

        try:
            kinds = _NODE_KIND_LIST.validate_python(response.json())
        except (ValueError, ValidationError) as exc:
            raise CatalogError(f"Malformed node catalog: {exc}") from exc

        logger.info("[Catalog] Loaded %d node kinds from %s", len(kinds), self.base_url)
        return kinds
