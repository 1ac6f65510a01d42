"""Mission Control 异常体系

仓储层、HTTP 客户端与网关共享同一套错误分类：
ValidationError / NotFoundError / ConflictError / TransportError。
"""


class MissionControlError(Exception):
    """基础异常"""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str, recoverable: bool = False) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试恢复
        """
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


class ValidationError(MissionControlError):
    """输入形状错误或必填字段为空"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: list[dict] | None = None) -> None:
        super().__init__(message, recoverable=False)
        self.errors = errors or []


class NotFoundError(MissionControlError):
    """目标记录不存在"""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: int | str) -> None:
        super().__init__(f"{entity} with id {entity_id} does not exist")
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(MissionControlError):
    """唯一约束冲突（如重复的 cron_job_id）"""

    code = "CONFLICT"


class TransportError(MissionControlError):
    """存储不可达或请求超时

    轮询期间出现时静默等待下一轮；用户操作期间出现时需要向上暴露。
    """

    code = "STORE_UNREACHABLE"

    def __init__(self, message: str) -> None:
        super().__init__(message, recoverable=True)
