"""Error taxonomy for file import.

FormatError means the input is structurally wrong (wrong line count, missing
XML containers, missing archive entries). DataError means the input parsed
but held nothing usable. Callers show format-specific or content-specific
guidance depending on which one they catch.
"""


class FormatError(ValueError):
    """Malformed or incomplete input structure."""


class DataError(ValueError):
    """Structurally valid input that yields no usable data."""


class UploadValidationError(ValueError):
    """One or more upload pre-checks failed."""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Upload validation failed")
