from .session import AuthSession, ClientError, RefreshScheduler

__all__ = ["AuthSession", "ClientError", "RefreshScheduler"]
