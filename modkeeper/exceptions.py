"""
ModKeeper 统一异常体系

提供分层的异常结构，支持错误代码、上下文信息和 JSON 序列化。
"""

from typing import Any, Dict, Optional


class ModKeeperError(Exception):
    """ModKeeper 基础异常类"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self._get_default_code()
        self.context = context or {}

    def _get_default_code(self) -> str:
        """获取默认错误代码"""
        return "E000"

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "context": self.context,
            "type": self.__class__.__name__,
        }

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class ConfigError(ModKeeperError):
    """配置相关错误"""

    def _get_default_code(self) -> str:
        return "E100"


class ConfigFileNotFound(ConfigError):
    """配置文件不存在"""

    def __init__(self, path: str):
        super().__init__(f"配置文件不存在: {path}", context={"path": path})
        self.path = path

    def _get_default_code(self) -> str:
        return "E101"


class ConfigParseError(ConfigError):
    """配置解析错误"""

    def _get_default_code(self) -> str:
        return "E102"


class APIError(ModKeeperError):
    """API 相关错误"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        status: Optional[int] = None,
    ):
        super().__init__(message, code, context)
        self.status = status
        if status is not None:
            self.context["status_code"] = status

    def _get_default_code(self) -> str:
        return "E200"


class TransportError(APIError):
    """连接层错误（连接失败、超时），不重试"""

    def _get_default_code(self) -> str:
        return "E201"


class RateLimitExceeded(APIError):
    """速率限制器无法放行（已取消、超时或配置错误），不重试"""

    def _get_default_code(self) -> str:
        return "E429"


class RepositoryError(APIError):
    """仓库返回了非预期的状态码"""

    def _get_default_code(self) -> str:
        return "E202"


class ItemNotFound(APIError):
    """仓库中不存在该项目"""

    def __init__(self, project_id: str, platform: str):
        super().__init__(
            f"在 {platform} 上找不到项目 {project_id}",
            context={"project_id": project_id, "platform": platform},
            status=404,
        )
        self.project_id = project_id
        self.platform = platform

    def _get_default_code(self) -> str:
        return "E404"


class NoMatchFound(APIError):
    """项目存在，但没有满足条件的文件"""

    def __init__(self, project_id: str, platform: str):
        super().__init__(
            f"{platform} 上的项目 {project_id} 没有符合条件的文件",
            context={"project_id": project_id, "platform": platform},
        )
        self.project_id = project_id
        self.platform = platform

    def _get_default_code(self) -> str:
        return "E203"


class UnsupportedPlatform(APIError):
    """未知的平台"""

    def _get_default_code(self) -> str:
        return "E204"


class UnsupportedOperation(APIError):
    """该平台不支持此操作"""

    def _get_default_code(self) -> str:
        return "E205"


class DownloadError(ModKeeperError):
    """下载相关错误"""

    def _get_default_code(self) -> str:
        return "E300"


class DownloadNetworkError(DownloadError):
    """下载网络错误"""

    def _get_default_code(self) -> str:
        return "E301"


class DownloadChecksumError(DownloadError):
    """下载校验错误"""

    def _get_default_code(self) -> str:
        return "E302"


class DownloadFileError(DownloadError):
    """下载文件操作错误"""

    def _get_default_code(self) -> str:
        return "E303"


class FileUnreadable(ModKeeperError):
    """本地文件不存在或无法读取"""

    def __init__(self, path: str, reason: Optional[str] = None):
        message = f"无法读取文件: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message, context={"path": path})
        self.path = path

    def _get_default_code(self) -> str:
        return "E600"


class IntegrityError(ModKeeperError):
    """锁文件与配置不一致"""

    def _get_default_code(self) -> str:
        return "E700"


class UnexpectedError(ModKeeperError):
    """未分类的错误"""

    def _get_default_code(self) -> str:
        return "E999"


__all__ = [
    # 基础异常
    "ModKeeperError",
    # 配置异常
    "ConfigError",
    "ConfigFileNotFound",
    "ConfigParseError",
    # API 异常
    "APIError",
    "TransportError",
    "RateLimitExceeded",
    "RepositoryError",
    "ItemNotFound",
    "NoMatchFound",
    "UnsupportedPlatform",
    "UnsupportedOperation",
    # 下载异常
    "DownloadError",
    "DownloadNetworkError",
    "DownloadChecksumError",
    "DownloadFileError",
    # 本地文件与一致性
    "FileUnreadable",
    "IntegrityError",
    "UnexpectedError",
]
