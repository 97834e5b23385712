"""Root of the error taxonomy. Every error carries a stable kind and a readable message."""


class GitGuardError(Exception):
    """Base for all service errors. Subclasses pin `kind` and `status_code`."""

    kind = "internal"
    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, "status": self.status_code}
