"""
common.exceptions
~~~~~~~~~~~~~~~~~
Application exception classes.

The configuration core reports ordinary failures through return values;
these exceptions cover conditions the caller cannot continue past.
"""


class AppError(Exception):
    """Base application error.  Subclass to define domain-specific errors."""

    default_code: str = "error"
    default_detail: str = "An error occurred."

    def __init__(self, detail: str | None = None, code: str | None = None) -> None:
        self.detail = detail or self.default_detail
        self.code = code or self.default_code
        super().__init__(self.detail)

    def __str__(self) -> str:
        return self.detail


class InstallationError(AppError):
    default_code = "site_not_installed"
    default_detail = "The site is not installed: no installation record was found."


class UnsupportedOperationError(AppError):
    default_code = "not_implemented"
    default_detail = "This operation is not supported."
