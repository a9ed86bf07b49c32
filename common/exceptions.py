"""Exception classes shared by the staging, compression and transfer layers."""


class TransferError(Exception):
    """
    Base exception class for all transfer pipeline errors.
    """
    pass


class StorageWriteError(TransferError):
    """
    Raised when a chunk cannot be persisted to the staging area.
    The client may retry that chunk.
    """
    pass


class ChunkValidationError(TransferError):
    """
    Raised when a chunk's index or declared total contradicts the upload.
    """
    pass


class CompletenessError(TransferError):
    """
    Raised when finalize is requested before every declared chunk is staged,
    or after chunks were lost to an interrupted assembly.
    The client has to restart the whole upload.
    """
    pass


class NotFoundError(TransferError):
    """
    Raised when a requested artifact does not exist.
    """
    pass


class TranscodeFailure(TransferError):
    """
    Raised inside a compression engine when the encoder fails.
    Engines recover by passing the artifact through unchanged.
    """
    pass
