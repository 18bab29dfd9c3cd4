from __future__ import annotations


# Exceptions raised when an error or invalid response is received
class NNTPError(Exception):
    """Base class for all callisto exceptions"""

    def __init__(self, *args: str) -> None:
        Exception.__init__(self, *args)
        try:
            self.response = args[0]
        except IndexError:
            self.response = "No response given"


class NNTPTransportError(NNTPError):
    """Connection failed, closed or broke mid-response"""


class NNTPProtocolError(NNTPError):
    """Unexpected status code or malformed greeting"""


class NNTPDataError(NNTPProtocolError):
    """Error in response data"""


class NNTPAuthError(NNTPError):
    """Credentials rejected"""
