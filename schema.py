"""
Pydantic data models for the Pipeline Editor.
Defines the core data structures shared by the graph engine, performers and the CLI.
Pipeline Editor 的 Pydantic 数据模型。
定义了图引擎、执行器（performer）与命令行界面之间共享的核心数据结构。
"""

from __future__ import annotations

import time
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_SOURCE_HANDLE = "output"  # 默认输出端口名
DEFAULT_TARGET_HANDLE = "input"   # 默认输入端口名
SYSTEM_NODE_NAME = "System"       # 系统级日志条目使用的节点名


# ======================================================================
# Catalog
# 节点类型目录
# ======================================================================

class NodeKind(BaseModel):
    """
    One entry of the node-type catalog served by the backend.
    后端节点目录中的一条记录（节点类型）。
    """
    id: str = Field(description="Catalog identifier")  # 目录 ID
    name: str = Field(description="Display name, also used as the node kind tag")  # 显示名，同时作为节点 kind 标签


# ======================================================================
# Graph structures
# 图结构
# ======================================================================

class NodeStatus(str, Enum):
    """
    Node lifecycle states, managed by NodeStateMachine.
    节点生命周期状态，由 NodeStateMachine 管理合法转移。

    Transition graph:
    转移图：
        IDLE -> RUNNING -> COMPLETED
                        -> ERROR
        Any state -> IDLE   (reset at the start of every run / 每次运行开始时重置)
    """
    IDLE = "idle"           # 未执行 / 等待执行
    RUNNING = "running"     # 正在执行
    COMPLETED = "completed" # 执行成功
    ERROR = "error"         # 执行失败


class Position(BaseModel):
    """Canvas position. The engine never interprets it.
    画布坐标，引擎不使用。"""
    x: float = 0.0
    y: float = 0.0


class PipelineNode(BaseModel):
    """
    A single processing node placed on the canvas.
    画布上的单个处理节点。

    `kind` is an opaque tag taken from the catalog; it is never validated
    against the catalog and is only used to pick the simulated log message.
    `kind` 是来自目录的不透明标签，不会与目录做校验，仅用于选择模拟日志消息。
    """
    id: str = Field(description="Unique ID within the graph, e.g. 'node-1'")  # 图内唯一 ID
    kind: str = Field(description="Node kind tag, e.g. 'Data Source'")      # 节点类型标签
    name: str = Field(description="Human display name")                       # 显示名称
    position: Position = Field(default_factory=Position)                      # 画布位置
    status: NodeStatus = NodeStatus.IDLE                                      # 当前状态，仅由执行驱动修改


class PipelineEdge(BaseModel):
    """
    A directed dependency from one node's output to another node's input.
    从一个节点输出端口指向另一节点输入端口的有向依赖边。
    Edges are immutable once created.
    边一旦创建即不可变。
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique ID within the graph, e.g. 'edge-1'")  # 图内唯一 ID
    source: str = Field(description="Source node ID")                         # 起点节点 ID
    target: str = Field(description="Target node ID")                         # 终点节点 ID
    source_handle: str = DEFAULT_SOURCE_HANDLE                                # 起点端口名
    target_handle: str = DEFAULT_TARGET_HANDLE                                # 终点端口名


# ======================================================================
# Connection validation
# 连线校验
# ======================================================================

class ConnectionRejection(str, Enum):
    """Why a proposed edge was refused.
    连线被拒绝的原因。"""
    SELF_LOOP = "self_loop"         # 自环
    CYCLE = "cycle"                 # 会形成环
    UNKNOWN_NODE = "unknown_node"   # 端点节点不存在


class ConnectionCheck(BaseModel):
    """
    Typed result of validating a proposed connection.
    Returned to the caller instead of raising a user-facing alert, so the
    presentation layer decides how to surface it.

    连线校验的类型化结果。
    返回给调用方而不是直接弹出提示，由展示层决定如何呈现。
    """
    source: str
    target: str
    valid: bool
    reason: ConnectionRejection | None = None
    message: str = ""


# ======================================================================
# Execution
# 执行模型
# ======================================================================

class ExecutionLog(BaseModel):
    """
    A single execution log entry. System-level entries carry an empty node_id.
    单条执行日志。系统级日志的 node_id 为空字符串。
    """
    timestamp: float = Field(default_factory=time.time)  # 记录时间戳（秒）
    node_id: str = ""                                    # 来源节点 ID
    node_name: str = ""                                  # 来源节点显示名
    message: str                                         # 日志文本

    @property
    def is_system(self) -> bool:
        return self.node_id == ""


class RunSnapshot(BaseModel):
    """
    Full view of a run at one instant: every node's status plus the whole log.
    Callers may treat each snapshot as authoritative; no diffing is implied.

    运行在某一时刻的完整视图：所有节点状态 + 全部日志。
    调用方可将每个快照视为权威状态，无需做增量对比。
    """
    statuses: dict[str, NodeStatus] = Field(default_factory=dict)  # node_id -> 状态
    logs: list[ExecutionLog] = Field(default_factory=list)         # 当前日志序列
    is_running: bool = False                                        # 是否有运行进行中


class RunResult(BaseModel):
    """
    Outcome of one pipeline run.
    单次流水线运行的结果。
    """
    order: list[str] = Field(default_factory=list)                 # 调度器给出的执行顺序
    success: bool                                                   # 是否全部执行成功
    failed_node_id: str | None = None                               # 失败节点 ID（若有）
    statuses: dict[str, NodeStatus] = Field(default_factory=dict)  # 结束时的节点状态
    logs: list[ExecutionLog] = Field(default_factory=list)         # 完整日志
