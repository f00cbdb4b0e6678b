"""
Base Step Performer - Abstract interface for whatever executes a pipeline node.
BaseStepPerformer —— 执行流水线节点的抽象接口。

The execution driver never knows how a node computes its output: it hands
(node_id, node_name, node_kind) to a performer and awaits a result message.
The await is the only suspension point of a run.

执行驱动不关心节点如何计算输出：它把 (node_id, node_name, node_kind)
交给 performer 并等待返回的结果消息。该 await 是一次运行中唯一的挂起点。
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Union


class StepFailure(Exception):
    """
    Raised by a performer to signal that a node's step failed.
    由 performer 抛出，表示该节点执行失败。执行驱动会将其转为一条系统日志并停止本次运行。
    """

    def __init__(self, message: str, node_id: str = ""):
        super().__init__(message)
        self.node_id = node_id


class BaseStepPerformer(ABC):
    """
    Abstract base class for step performers.
    所有 step performer 的抽象基类。
    """

    @abstractmethod
    async def perform(self, node_id: str, node_name: str, node_kind: str) -> str:
        """
        Run one node and return its result message. Raise to signal failure.
        执行单个节点并返回结果消息；通过抛出异常表示失败。
        """


StepFunction = Callable[[str, str, str], Union[str, Awaitable[str]]]


class FunctionStepPerformer(BaseStepPerformer):
    """
    Adapts a plain callable (sync or async) to the performer interface.
    将普通函数（同步或异步）适配为 performer 接口，便于测试和脚本使用。
    """

    def __init__(self, fn: StepFunction):
        self._fn = fn

    async def perform(self, node_id: str, node_name: str, node_kind: str) -> str:
        result: Any = self._fn(node_id, node_name, node_kind)
        if inspect.isawaitable(result):
            result = await result
        return str(result)
