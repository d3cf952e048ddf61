"""
Error taxonomy for guide resolution.

Most of these are absorbed by the resolution service and logged; only
the HTTP layer turns the final outcome into a 404/502 response.
"""


class GuideServiceError(Exception):
    """Base class for all guide service errors"""
    pass


class GuideTooLargeError(GuideServiceError):
    """Raised when a guide document exceeds the configured size cap"""

    def __init__(self, size: int, max_size: int):
        self.size = size
        self.max_size = max_size
        super().__init__(f"XMLTV data of {size} bytes exceeds maximum size of {max_size} bytes")


class GuideParseError(GuideServiceError):
    """Raised when guide parsing times out"""
    pass


class TransportError(GuideServiceError):
    """Raised when a directory or guide HTTP request fails"""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Request to {url} failed: {reason}")


class DecodeError(GuideServiceError):
    """A guide body that is not valid UTF-8 (absorbed as empty text)"""
    pass


class DirectoryFormatError(GuideServiceError):
    """Raised when a directory JSON payload does not match the expected shape"""
    pass


class NoDirectoryMatch(GuideServiceError):
    """The requested identifier is unknown to the channel directory"""

    def __init__(self, channel_id: str):
        self.channel_id = channel_id
        super().__init__(f"No directory match for channel {channel_id}")


class NoGuideSourceError(GuideServiceError):
    """No guide URL could be derived for a directory entry"""

    def __init__(self, directory_id: str):
        self.directory_id = directory_id
        super().__init__(f"No guide source found for channel {directory_id}")
