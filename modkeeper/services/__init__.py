"""
ModKeeper 服务层

包含业务逻辑服务：限速传输、版本匹配、本地状态存储。
"""

from modkeeper.services.transport import RateLimitedTransport, RetryConfig
from modkeeper.services.version_matcher import VersionMatcher
from modkeeper.services.state_store import StateStore, lock_path_for

__all__ = [
    "RateLimitedTransport",
    "RetryConfig",
    "VersionMatcher",
    "StateStore",
    "lock_path_for",
]
