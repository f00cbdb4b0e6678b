"""
Simulated Step Performer - deterministic fake execution for demos and tests.
模拟执行器 —— 用于演示和测试的确定性假执行。

Each known node kind maps to a fixed message; anything else gets a generic
one. A fixed delay stands in for real work.
每种已知节点类型对应一条固定消息，其余类型使用通用消息；用固定延迟模拟真实耗时。
"""

from __future__ import annotations

import asyncio
import logging

import config
from performers.base import BaseStepPerformer

logger = logging.getLogger(__name__)

# kind -> 消息模板，{name} 为节点显示名
KIND_MESSAGES: dict[str, str] = {
    "Data Source": 'Data Source "{name}" processed 100 records',
    "Transformer": 'Transformer "{name}" applied transformation',
    "Model": 'Model "{name}" generated predictions',
    "Sink": 'Sink "{name}" saved results',
}
FALLBACK_MESSAGE = 'Node "{name}" executed'


class SimulatedStepPerformer(BaseStepPerformer):
    """
    Returns the reference message for a node kind after a fixed latency.
    固定延迟后返回该节点类型对应的参考消息。
    """

    def __init__(self, latency: float | None = None):
        # latency=0 用于测试；None 时读取配置
        self.latency = config.STEP_LATENCY_SECONDS if latency is None else latency

    @staticmethod
    def build_message(node_name: str, node_kind: str) -> str:
        template = KIND_MESSAGES.get(node_kind, FALLBACK_MESSAGE)
        return template.format(name=node_name)

    async def perform(self, node_id: str, node_name: str, node_kind: str) -> str:
        logger.debug("[Simulated] %s (%s) sleeping %.2fs", node_id, node_kind, self.latency)
        if self.latency > 0:
            await asyncio.sleep(self.latency)
        return self.build_message(node_name, node_kind)
