"""
Custom exception hierarchy for classical-lint.

Rule violations are never raised; they are reported as validation issues.
These exceptions cover configuration, rule declaration and the adapters that
read releases from disk or from JSON documents.
"""


class ClassicalLintError(Exception):
    """Base class for all application-specific errors."""
    pass


class ConfigurationError(ClassicalLintError):
    """Raised when there are configuration-related issues."""
    pass


class RuleDefinitionError(ClassicalLintError):
    """Raised when a rule is declared with invalid metadata."""

    def __init__(self, rule_id: str, reason: str):
        self.rule_id = rule_id
        self.reason = reason
        super().__init__(f"Invalid rule definition {rule_id!r}: {reason}")


class FileProcessingError(ClassicalLintError):
    """Base class for errors while reading audio files."""
    pass


class UnsupportedFormatError(FileProcessingError):
    """Raised when a file is not a supported audio format."""

    def __init__(self, file_path: str, format_detected: str = None):
        self.file_path = file_path
        self.format_detected = format_detected

        if format_detected:
            message = f"Unsupported audio format '{format_detected}' for file: {file_path}"
        else:
            message = f"Could not determine audio format for file: {file_path}"

        super().__init__(message)


class MetadataExtractionError(FileProcessingError):
    """Raised when tags cannot be read from an audio file."""

    def __init__(self, file_path: str, reason: str = None):
        self.file_path = file_path
        self.reason = reason

        message = f"Failed to read tags from file: {file_path}"
        if reason:
            message += f" - {reason}"

        super().__init__(message)


class TagValidationError(FileProcessingError):
    """Raised when required tags are missing from a tag record."""

    def __init__(self, file_path: str, missing_fields: list):
        self.file_path = file_path
        self.missing_fields = list(missing_fields)

        message = f"Missing required tags in {file_path or '<unknown file>'}: {', '.join(self.missing_fields)}"
        super().__init__(message)


class ReleaseDocumentError(ClassicalLintError):
    """Raised when a release JSON document cannot be read or is invalid."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid release document {path}: {reason}")


class FilesystemError(ClassicalLintError):
    """Raised when filesystem operations fail."""

    def __init__(self, path: str, operation: str, reason: str = None):
        self.path = path
        self.operation = operation
        self.reason = reason

        message = f"Filesystem error during {operation} on {path}"
        if reason:
            message += f": {reason}"

        super().__init__(message)
