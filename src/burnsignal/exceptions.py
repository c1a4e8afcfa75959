"""burnsignal exception hierarchy.

All exceptions follow a three-part message pattern: what failed,
likely cause, and suggested fix.
"""

from __future__ import annotations


class BurnSignalError(Exception):
    """Base exception for all burnsignal errors.

    Args:
        what: Description of what failed.
        cause: Likely cause of the failure.
        fix: Suggested action to resolve the issue.

    Example:
        >>> raise BurnSignalError(
        ...     what="Feature extraction failed",
        ...     cause="Unexpected internal state",
        ...     fix="Please report this issue",
        ... )
    """

    def __init__(
        self,
        what: str,
        cause: str = "",
        fix: str = "",
    ) -> None:
        """Initialize with structured error context.

        Args:
            what: Description of what failed.
            cause: Likely cause of the failure.
            fix: Suggested action to resolve the issue.
        """
        self.what = what
        self.cause = cause
        self.fix = fix
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Build the multi-line error message from parts.

        Returns:
            Formatted message with optional Cause and Fix lines.
        """
        parts = [self.what]
        if self.cause:
            parts.append(f"Cause: {self.cause}")
        if self.fix:
            parts.append(f"Fix: {self.fix}")
        return "\n".join(parts)


class ConfigurationError(BurnSignalError):
    """Raised for invalid configuration files or values.

    Example:
        >>> raise ConfigurationError(
        ...     what="Cannot read configuration file",
        ...     cause="File not found: ~/.burnsignal/config.json",
        ...     fix="Create the file or unset BURNSIGNAL_CONFIG",
        ... )
    """


class InvalidSeriesError(BurnSignalError):
    """Raised when a single unit's series breaks the input contract.

    Inside a batch this error is isolated to the offending unit, which
    receives an all-missing feature record.

    Example:
        >>> raise InvalidSeriesError(
        ...     what="Series contains non-finite values",
        ...     cause="2 observations are NaN or infinite",
        ...     fix="Drop masked observations before feature extraction",
        ... )
    """


class BatchShapeError(BurnSignalError):
    """Raised for a malformed batch structure.

    Never absorbed per unit: inconsistent shapes mean the upstream
    producer violated its contract, so the whole batch is rejected.

    Example:
        >>> raise BatchShapeError(
        ...     what="Ragged batch offsets are inconsistent",
        ...     cause="Last offset 90 != number of observations 100",
        ...     fix="Rebuild the batch with RaggedBatch.from_series()",
        ... )
    """
