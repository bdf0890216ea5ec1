"""Error taxonomy for field validation and submission finalization.

Validators raise these internally; the collect, preview, and submit entry points
catch them and report them inline so the calling agent can relay the message.
"""


class FormEngineError(Exception):
    """Base exception for form engine errors."""

    code = "form_engine_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(FormEngineError):
    """Field definition is malformed (missing choices, bad scale bounds)."""

    code = "configuration_error"


class RequiredFieldError(FormEngineError):
    """Required field was left empty."""

    code = "required_field"


class TypeMismatchError(FormEngineError):
    """Answer has the wrong shape (a list given to a scalar field)."""

    code = "type_mismatch"


class FormatError(FormEngineError):
    """Answer could not be parsed as an email, URL, number, or date."""

    code = "format_error"


class RangeError(FormEngineError):
    """Number or scale answer falls outside its bounds."""

    code = "range_error"


class ChoiceError(FormEngineError):
    """Answer is not one of the allowed choices."""

    code = "choice_error"


class FileTypeError(FormEngineError):
    """Uploaded file MIME type is not accepted by the field."""

    code = "file_type_error"


class FileTooLargeError(FormEngineError):
    """Uploaded file is larger than the configured upload limit."""

    code = "file_too_large"


class MissingFileMetadataError(FormEngineError):
    """File field answered without upload metadata."""

    code = "missing_file_metadata"


class UnknownFieldError(FormEngineError):
    """Field name does not exist in the form schema."""

    code = "unknown_field"


class IncompleteSubmissionError(FormEngineError):
    """Required fields are missing at submission time."""

    code = "incomplete_submission"

    def __init__(self, message: str, missing_fields: list[str]):
        super().__init__(message)
        self.missing_fields = missing_fields


class SubmissionValidationError(FormEngineError):
    """One or more answers failed re-validation at submission time."""

    code = "validation_failed"

    def __init__(self, message: str, errors: list[str]):
        super().__init__(message)
        self.errors = errors


class PersistenceError(FormEngineError):
    """Submission store call failed."""

    code = "persistence_error"
