"""
Custom exception classes for the signal bot.

Provides typed exceptions for policy rejections and execution failures.
"""

class BotException(Exception):
    """Base exception for all bot-related errors."""
    
    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context
    
    def __str__(self):
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


class ConfigurationException(BotException):
    """Raised when configuration is invalid."""
    pass


class NetworkException(BotException):
    """Raised when network/RPC operations fail."""
    pass


# ============================================
# POSITION POLICY REJECTIONS (never retried)
# ============================================

class PositionRejected(BotException):
    """Raised when the position slot refuses an open or close."""
    pass


class AlreadyHeld(PositionRejected):
    pass


class NotHeld(PositionRejected):
    pass


class Denylisted(PositionRejected):
    pass


class AlreadyTraded(PositionRejected):
    pass


class OperationInProgress(PositionRejected):
    """Another open/close is still in flight against the slot."""
    pass


# ============================================
# EXECUTION FAILURES
# ============================================

class SwapException(BotException):
    """Raised when swap operations fail."""
    pass


class InsufficientFunds(SwapException):
    pass


class NoRoute(SwapException):
    pass


class BuildFailed(SwapException):
    pass


class BroadcastFailed(SwapException):
    pass


class OnChainFailure(SwapException):
    """Transaction landed but the ledger reports an error."""
    pass


class TransactionTimeout(SwapException):
    """Expired blockhash or confirmation timeout that could not be recovered."""
    pass
