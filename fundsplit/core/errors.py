"""
Error kinds raised by distribution instances and their collaborators.

Every error aborts the enclosing atomic operation; state is left exactly as
it was before the call.
"""


class DistributionError(Exception):
    """Base class for distribution instance failures."""


class AlreadyClaimed(DistributionError):
    """The index has already been claimed."""

    def __init__(self, index: int):
        super().__init__(f"Index {index} already claimed")
        self.index = index


class InvalidProof(DistributionError):
    """The inclusion proof does not reproduce the commitment root."""

    def __init__(self, index, reason: str = ""):
        super().__init__(reason or f"Invalid proof for index {index}")
        self.index = index


class TransferFailed(DistributionError):
    """The currency transfer primitive reported failure."""


class NotAuthorized(DistributionError):
    """Caller is not the instance owner."""


class AuctionAlreadyCreated(DistributionError):
    """An auction is already associated with the instance."""


class AuctionNotCreated(DistributionError):
    """No auction is associated with the instance yet."""


class AuctionClosed(DistributionError):
    """The associated auction already ended or was canceled."""


class InitializationReplay(DistributionError):
    """initialize() was called on an already initialized instance."""


class NotInitialized(DistributionError):
    """A business method was called before initialize()."""


class InstanceAlreadyExists(DistributionError):
    """The factory already created an instance for this commitment root."""


# =============================================================================
# Collaborator errors
# =============================================================================


class TransferError(Exception):
    """Raised by asset ledgers when a transfer cannot be performed."""


class AuctionServiceError(Exception):
    """Raised by the auction service when it rejects an operation."""


__all__ = [
    "DistributionError",
    "AlreadyClaimed",
    "InvalidProof",
    "TransferFailed",
    "NotAuthorized",
    "AuctionAlreadyCreated",
    "AuctionNotCreated",
    "AuctionClosed",
    "InitializationReplay",
    "NotInitialized",
    "InstanceAlreadyExists",
    "TransferError",
    "AuctionServiceError",
]
