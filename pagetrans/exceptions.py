# pagetrans/exceptions.py
"""
本模块定义了 pagetrans 项目中所有自定义的、语义化的异常类型。

异常按照错误分类组织：
- 配置错误（启动时拒绝，致命）
- 传输错误与容量错误（可重试，由翻译客户端在本地恢复）
- 数据错误（重试耗尽后的永久失败，仅影响对应条目/批次）
- 缓存或任务注册表不可用（致命，向调用者抛出）
"""


class PageTransError(Exception):
    """所有 pagetrans 自定义异常的通用基类。"""


class ConfigurationError(PageTransError):
    """加载、解析或校验配置时发生的错误，例如限流参数为负数。"""


class EngineNotFoundError(PageTransError, KeyError):
    """
    尝试使用一个未注册的翻译引擎时引发。
    继承自 KeyError 以保持与字典查找行为的一致性。
    """


class TransportError(PageTransError):
    """
    与外部翻译服务通信失败：超时、连接失败或非成功状态码。

    `retryable` 标记该错误是否值得退避后重试（超时、5xx 为 True，
    4xx 等客户端错误为 False）。
    """

    def __init__(
        self, message: str, *, retryable: bool = True, status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.retryable = retryable
        self.status_code = status_code


class CapacityError(TransportError):
    """翻译服务返回限流（如 HTTP 429）或并发饱和，总是可重试。"""

    def __init__(self, message: str, *, retry_after: float | None = None) -> None:
        super().__init__(message, retryable=True, status_code=429)
        self.retry_after = retry_after


class DataError(PageTransError):
    """某个批次或条目在重试耗尽后永久失败，或服务返回了无法对齐的数据。"""


class CacheUnavailableError(PageTransError):
    """缓存的持久层无法访问。这是致命错误，会直接抛给调用者。"""


class JobRegistryError(PageTransError):
    """任务注册表的使用违反约定，例如重复注销或以非所有者身份完成任务。"""
