from enum import Enum
from types import MappingProxyType
from typing import Optional

ERROR_MSG_HEADER = "Baidu face API error"
UNKNOWN_ERROR = "unknown error"

# Baidu AI Face error codes with their human readable explanation
ERROR_CATALOG = MappingProxyType({
    17: "每天请求量超限额",
    18: "QPS超限额",
    110: "Access Token失效",
    111: "Access Token过期",
    222201: "服务端请求失败",
    222202: "图片中没有人脸",
    222203: "无法解析人脸",
    222204: "从图片的url下载图片失败",
    222205: "服务端请求失败",
    222207: "未找到匹配的用户",
    222208: "图片的数量错误",
    222209: "face token不存在",
    222300: "人脸图片添加失败",
    222301: "获取人脸图片失败",
    223103: "找不到该用户",
    223105: "该人脸已存在",
    223113: "人脸有被遮挡",
    223114: "人脸模糊",
    223115: "人脸光照不好",
    223116: "人脸不完整",
})


def describe_error(error_code: int) -> str:
    """Return the catalog explanation for a remote error code"""
    return ERROR_CATALOG.get(error_code, UNKNOWN_ERROR)


class ErrorKind(str, Enum):
    REMOTE_SERVICE = "remote_service_error"
    MALFORMED_RESPONSE = "malformed_response"
    NO_MATCH = "no_match_found"
    TRANSPORT = "transport_error"


class FaceClientError(Exception):
    """Failure of a single face client call.

    Callers branch on ``kind`` instead of on exception subclasses.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        error_code: Optional[int] = None,
        remote_message: Optional[str] = None,
        field: Optional[str] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.error_code = error_code
        self.remote_message = remote_message
        self.field = field

    @classmethod
    def remote_service(cls, error_code: int, remote_message: Optional[str] = None) -> "FaceClientError":
        return cls(
            ErrorKind.REMOTE_SERVICE,
            f"{ERROR_MSG_HEADER} {error_code}: {describe_error(error_code)}",
            error_code=error_code,
            remote_message=remote_message,
        )

    @classmethod
    def malformed(cls, message: str, field: Optional[str] = None) -> "FaceClientError":
        return cls(ErrorKind.MALFORMED_RESPONSE, message, field=field)

    @classmethod
    def missing_field(cls, field: str) -> "FaceClientError":
        return cls.malformed(f"Field '{field}' is missing from the face service response", field=field)

    @classmethod
    def no_match(cls) -> "FaceClientError":
        return cls(
            ErrorKind.NO_MATCH,
            "No matching face found in the gallery; the user is likely not enrolled",
        )

    @classmethod
    def transport(cls, message: str) -> "FaceClientError":
        return cls(ErrorKind.TRANSPORT, message)

    def __repr__(self) -> str:
        return f"FaceClientError(kind={self.kind.value!r}, message={self.message!r})"
