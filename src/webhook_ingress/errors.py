from __future__ import annotations


class AddressResolutionError(Exception):
    """The caller address of a request could not be resolved."""


class MultiValuedForwardingHeaderError(AddressResolutionError):
    def __init__(self, values: list[str]) -> None:
        super().__init__('Unexpected value for request.headers["x-forwarded-for"]')
        self.values = values


class AddressUndeterminedError(AddressResolutionError):
    def __init__(self) -> None:
        super().__init__("request ip not determined")


class PublishError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PayloadTooLarge(Exception):
    def __init__(self, limit: int) -> None:
        super().__init__(f"payload exceeds {limit} bytes")
        self.limit = limit
