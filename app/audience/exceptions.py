"""Audience resolution exceptions."""


class AudienceResolutionError(Exception):
    """Raised when a notification target cannot be resolved."""

    def __init__(self, message: str, target_type: str = None, target_id: str = None):
        self.target_type = target_type
        self.target_id = target_id
        super().__init__(message)
