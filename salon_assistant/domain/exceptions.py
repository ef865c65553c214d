"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在编排层（ConversationOrchestrator）做统一捕获与用户提示。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "SEND_FAILED"）。
        message: 面向运维的错误信息（不会直接展示给最终用户）。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 provider、model 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class NetworkError(BusinessError):
    """网络层错误，例如连接失败、超时等。"""


class ApiError(BusinessError):
    """第三方 API 返回非 2xx/429 错误时抛出。"""


class RateLimitError(BusinessError):
    """Provider 限流错误。"""


class ValidationError(BusinessError):
    """参数或配置校验失败。"""


class PermissionDenied(BusinessError):
    """用户或系统拒绝了麦克风/定位权限。"""


class DeviceUnavailable(BusinessError):
    """没有可用的录音硬件，或设备打开失败。"""


class SendFailed(BusinessError):
    """对话后端不可达或返回错误；会话句柄仍然可用。"""


class TranscriptionFailed(BusinessError):
    """语音转写后端不可达或返回错误。"""


class SessionNotReady(BusinessError):
    """会话尚未初始化完成时尝试发送消息。"""
