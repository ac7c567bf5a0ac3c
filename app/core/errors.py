"""AdWizard — Domain Error Taxonomy.

Every error raised by the publishing core derives from ``AdWizardError`` and
carries a single human-readable message that is surfaced to the caller as-is.
"""

from typing import Optional


class AdWizardError(Exception):
    """Base class for publishing-core errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotConnected(AdWizardError):
    """No stored Facebook credential for the user."""

    def __init__(
        self,
        message: str = "Facebook connection not found. Please connect your Facebook account first.",
    ):
        super().__init__(message)


class ValidationFailed(AdWizardError):
    """A campaign request cannot be published as submitted."""


class MissingImage(ValidationFailed):
    """A creative has no resolvable image URL."""

    def __init__(self, creative_id: str):
        self.creative_id = creative_id
        super().__init__(
            f"Ad {creative_id} is missing an image URL. "
            "Please ensure all ads have processed images."
        )


class UnreachableImage(ValidationFailed):
    """A creative's image URL failed the reachability probe."""

    def __init__(self, url: str, status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(
            f"Image URL {url} is not accessible. "
            "Please ensure all images are processed before creating a campaign."
        )


class RemotePublishError(AdWizardError):
    """A Graph API call failed while publishing; message is the remote text."""

    def __init__(self, message: str, record_id: Optional[str] = None):
        self.record_id = record_id
        super().__init__(message)


class PersistenceError(AdWizardError):
    """Writing a local record failed."""
