"""
Error taxonomy for the visual analysis worker.

Every stage raises one of these; the orchestrator catches them once
and turns them into a failed job with a stored message.
"""


class VisualWorkerError(Exception):
    """Base class for worker errors"""


class PreconditionError(VisualWorkerError):
    """Job cannot start (missing source record or video reference)"""


class TransferError(VisualWorkerError):
    """Video download or frame upload failed"""


class DecodeError(VisualWorkerError):
    """Decoder exited non-zero or produced no frames"""


class OracleError(VisualWorkerError):
    """Oracle returned an empty, unparsable or invalid response"""


class InvalidTransitionError(VisualWorkerError):
    """Illegal job status change"""
