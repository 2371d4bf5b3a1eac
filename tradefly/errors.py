from __future__ import annotations


class FetchError(Exception):
    """Classified failure of a single provider quote fetch."""

    kind = "FETCH_ERROR"

    def __init__(self, ticker: str, detail: str | None = None) -> None:
        self.ticker = ticker
        self.detail = detail
        message = f"{self.kind} ticker={ticker}"
        if detail:
            message = f"{message} detail={detail}"
        super().__init__(message)


class TransportError(FetchError):
    kind = "TRANSPORT"


class UnauthorizedError(FetchError):
    kind = "UNAUTHORIZED"


class RateLimitedError(FetchError):
    kind = "RATE_LIMITED"


class ServerError(FetchError):
    kind = "SERVER_ERROR"

    def __init__(self, ticker: str, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(ticker, f"status={status_code}")


class NoDataError(FetchError):
    kind = "NO_DATA"


class BackendApiError(Exception):
    """TradeFly backend call failed; the message is user-presentable."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
