"""
   运费报价相关异常类型。
   请求校验错误 / 规则库（DB）读取失败与 HTTP 层解耦，由 main.py 统一转成 {"error": ...}。
"""


class ShippingError(Exception):
    """Base for all shipping quote errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ShippingError):
    """Missing or malformed required request field (reported as 400)."""

    status_code = 400


class UpstreamError(ShippingError):
    """Rule store unreachable or query failed; no partial quote is returned."""

    status_code = 500
