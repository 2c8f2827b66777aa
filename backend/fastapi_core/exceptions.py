"""
Exception hierarchy of the HTTP session surface
Handlers in fastapi_server.py turn these into JSON error bodies
"""

from typing import Optional
from fastapi import status


class CharacterBuilderException(Exception):
    """Base exception for the character builder API"""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class SessionNotFoundException(CharacterBuilderException):
    """No build session registered under the id"""

    def __init__(self, session_id: int):
        self.session_id = session_id
        super().__init__(f"Build session {session_id} not found", status.HTTP_404_NOT_FOUND)


class BuildSessionException(CharacterBuilderException):
    """A session could not be created or used"""

    def __init__(self, message: str, session_id: Optional[int] = None):
        self.session_id = session_id
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class ValidationException(CharacterBuilderException):
    """Request was well-formed but rejected by the engine"""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message, status.HTTP_400_BAD_REQUEST)
