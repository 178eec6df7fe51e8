"""Domain errors raised by core modules and services.

Routers and the exception handlers registered in ``safario.main`` turn these
into HTTP responses.
"""

class SafarioError(Exception):
    """Base class for domain errors"""

class InvalidTransition(SafarioError):
    """A status change that the workflow does not allow"""

    def __init__(self, kind: str, current: str, requested: str):
        self.kind = kind
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move {kind} from '{current}' to '{requested}'")

class InvalidPhoneNumber(SafarioError):
    """Phone number is not in E.164 form"""

class UpstreamServiceError(SafarioError):
    """A third-party API call failed; details are logged, not returned"""

    def __init__(self, service: str, detail: str = ""):
        self.service = service
        self.detail = detail
        super().__init__(f"{service} request failed: {detail}" if detail else f"{service} request failed")
