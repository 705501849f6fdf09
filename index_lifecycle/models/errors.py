from typing import Any


class IncompleteDescriptorError(ValueError):
    """
    Raised before any remote call when a descriptor or operation lacks required information.
    """
    def __init__(self, descriptor: Any, reason: str = ""):
        super().__init__("Descriptor is missing required information", descriptor, reason)
        self.descriptor = descriptor
        self.reason = reason


class MissingIndexListError(ValueError):
    def __init__(self, operation: str):
        super().__init__(f"No indices were supplied for {operation}")
        self.operation = operation
