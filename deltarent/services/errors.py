"""业务异常定义，路由层据 status_code 转换为统一响应。"""


class ServiceError(Exception):
    """业务异常基类。"""

    status_code = 500

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ValidationError(ServiceError):
    """参数缺失、格式错误或超出范围。"""

    status_code = 400


class InvalidTransitionError(ServiceError):
    """账号状态不允许当前操作。"""

    status_code = 400


class AuthError(ServiceError):
    """报表密码错误。"""

    status_code = 401


class NotFoundError(ServiceError):
    """账号不存在。"""

    status_code = 404


class StorageError(ServiceError):
    """数据库读写失败。"""

    status_code = 500
