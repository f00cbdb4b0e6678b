"""
Configuration module for the Pipeline Editor.
Loads settings from environment variables or .env file.
Pipeline Editor 配置模块。
从环境变量或 .env 文件加载所有配置项。
"""

import os
from dotenv import load_dotenv

load_dotenv()  # 自动读取项目根目录的 .env 文件（若存在），优先级低于系统环境变量

# --- Node Catalog ---
# --- 节点类型目录 ---
BACKEND_URL = os.getenv("BACKEND_URL", "http://localhost:8000")  # Catalog backend base URL / 节点目录后端地址
CATALOG_TIMEOUT = float(os.getenv("CATALOG_TIMEOUT", "10"))       # HTTP timeout in seconds / 请求超时（秒）

# --- Execution ---
# --- 执行参数 ---
STEP_LATENCY_SECONDS = float(os.getenv("STEP_LATENCY_SECONDS", "1.0"))  # 模拟执行器每个节点的延迟（秒）

# --- Editing ---
# --- 编辑行为 ---
# true: 连线时即校验（拒绝自环 / 成环）；false: 仅在运行时由调度器发现非法图
ENFORCE_CONNECTION_VALIDATION = os.getenv("ENFORCE_CONNECTION_VALIDATION", "true").lower() == "true"

# --- Logging ---
# --- 日志 ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()  # verbose 模式下会被覆盖为 DEBUG
