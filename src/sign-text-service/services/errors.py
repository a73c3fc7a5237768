"""Exceptions raised by the sign text services"""


class SignTextError(RuntimeError):
    """Base class for service errors"""


class ModelNotReadyError(SignTextError):
    """Letter classifier is not initialized"""


class SessionNotReadyError(SignTextError):
    """Recognition session has not been started"""
