from __future__ import annotations


class ShopError(Exception):
    """Base error; ``status_code`` is the HTTP status it maps to."""

    status_code: int = 500

    def __init__(self, message: str, headers: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.headers = headers


class StoreConnectionError(ShopError):
    """The database did not answer the liveness check. Fatal at startup."""


class QueryError(ShopError):
    status_code = 500


class NotFoundError(ShopError):
    status_code = 404


class MethodNotAllowedError(ShopError):
    status_code = 405


class TemplateError(ShopError):
    status_code = 500


class BadRequestError(ShopError):
    status_code = 400
