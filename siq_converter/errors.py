class ConversionError(Exception):
    """Base exception for errors that abort an SIQ conversion"""
    pass


class InvalidArchiveError(ConversionError):
    """Raised when the uploaded data is not a readable zip archive"""
    pass


class MissingContentError(ConversionError):
    """Raised when the archive has no content.xml entry"""
    pass


class FetchError(ConversionError):
    """Raised when content.xml cannot be fetched from a remote directory"""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to load SIQ content from {url} ({reason})")
        self.url = url
        self.reason = reason


class InvalidXmlError(ConversionError):
    """Raised when content.xml is not well-formed"""
    pass


class UnexpectedRootError(ConversionError):
    """Raised when the document root is not a <package> element"""

    def __init__(self, tag: str):
        super().__init__(f"Unexpected SIQ root element ({tag}).")
        self.tag = tag


class NoRoundsError(ConversionError):
    """Raised when the package contains no rounds"""
    pass


class InvalidPackError(ValueError):
    """Raised when a pack dictionary is missing required fields"""
    pass
