"""客户端异常

在核心异常分类之上补充网络层细节。
"""

from missionctl.core.exceptions import TransportError


class StoreUnreachableError(TransportError):
    """网关不可达（连接失败、超时、DNS 解析失败或网关返回 502/503/504）

    轮询期间由 BoardPoller 静默吞掉，等待下一轮。
    """

    def __init__(self, url: str, original_error: Exception | str) -> None:
        """
        Args:
            url: 尝试访问的地址
            original_error: 原始异常或网关返回的错误信息
        """
        super().__init__(f"Mission Control 网关不可达: {url} -- {original_error}")
        self.url = url
        self.original_error = original_error


class MalformedResponseError(TransportError):
    """网关返回了成功状态码，但响应体无法解析为预期的行"""

    def __init__(self, url: str, detail: Exception | str) -> None:
        super().__init__(f"网关响应无法解析: {url} -- {detail}")
        self.url = url
        self.detail = detail
