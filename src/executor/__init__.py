from .assembler import ArbTransactionAssembler, FeeOverride
from .engine import (
    BundleSubmitter,
    DryRunReport,
    SubmissionAttempt,
    SubmissionOutcome,
    SubmissionState,
)
from .relay import (
    BundleResolution,
    BundleSubmission,
    FlashbotsRelay,
    RelayError,
    RelayResponseError,
)

__all__ = [
    "ArbTransactionAssembler",
    "FeeOverride",
    "BundleSubmitter",
    "DryRunReport",
    "SubmissionAttempt",
    "SubmissionOutcome",
    "SubmissionState",
    "BundleResolution",
    "BundleSubmission",
    "FlashbotsRelay",
    "RelayError",
    "RelayResponseError",
]
