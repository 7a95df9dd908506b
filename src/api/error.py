"""
HTTP errors raised by the routes and rendered by the handlers in app.py.

Both wrap a use case Error. A client error shows its code and message to
the caller; a server error shows its code with a generic message only.
"""

from typing import Dict

from fastapi import status

from libs.result import Error

GENERIC_SERVER_MESSAGE = "Internal server error"


class ClientError(Exception):
    """Rejected request; status_code comes from the route's error code table"""

    def __init__(self, base_error: Error, status_code: int = status.HTTP_400_BAD_REQUEST):
        self.base_error = base_error
        self.status_code = status_code
        super().__init__(base_error.message)

    def to_dict(self) -> Dict[str, str]:
        return {"code": self.base_error.code, "message": self.base_error.message}


class ServerError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, base_error: Error):
        self.base_error = base_error
        super().__init__(base_error.message)

    def to_dict(self) -> Dict[str, str]:
        return {"code": self.base_error.code, "message": GENERIC_SERVER_MESSAGE}
