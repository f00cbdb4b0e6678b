"""
Pipeline module - Core engine for pipeline graph validation, scheduling and execution.
Pipeline 模块 —— 流水线图的校验、调度与执行核心引擎。

Components:
  - validator.py:     connection checks (self-loop, cycle)
  - scheduler.py:     Kahn topological ordering
  - state_machine.py: node status transitions
  - executor.py:      sequential execution driver
  - graph.py:         editor-side node/edge store

模块组成：
  - validator.py:     连线校验（自环、成环）
  - scheduler.py:     Kahn 拓扑排序
  - state_machine.py: 节点状态机
  - executor.py:      串行执行驱动
  - graph.py:         编辑器侧的节点/边存储
"""

from pipeline.errors import (
    CyclicOrDisconnectedError,
    DuplicateOrderEntryError,
    EmptyPipelineError,
    InvalidConnectionError,
    PipelineError,
    RunInProgressError,
)
from pipeline.executor import PipelineExecutor
from pipeline.graph import PipelineGraph
from pipeline.scheduler import get_execution_order
from pipeline.state_machine import InvalidTransitionError, NodeStateMachine
from pipeline.validator import check_connection, ensure_valid_connection, is_valid_connection
