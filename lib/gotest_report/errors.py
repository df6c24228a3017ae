class ReportError(Exception):
    """Base class for every failure that aborts report generation."""


class DecodeError(ReportError):
    def __init__(self, message: str, line_number: int | None = None) -> None:
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class IntegrityError(ReportError):
    """Input decoded fine but cannot produce a meaningful report."""


class TemplateError(ReportError):
    pass
