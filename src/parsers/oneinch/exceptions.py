class OneInchError(Exception):
    pass


class OneInchConfigError(OneInchError):
    pass


class OneInchHttpError(OneInchError):
    """Upstream answered with a non-2xx status."""

    def __init__(self, status_code: int, endpoint: str = "") -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(f"HTTP error! status: {status_code} ({endpoint})")


class OneInchResponseError(OneInchError):
    """Upstream body did not match the expected schema or carried an error."""
