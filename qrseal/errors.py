class QrSealError(Exception):
    """Base class for qrseal-specific errors."""


# Cover image
class ImageDecodeError(QrSealError):
    pass


class PlacementError(QrSealError):
    """Rendered QR code does not fit inside the cover image."""


# QR rendering
class ColorParseError(QrSealError, ValueError):
    pass


class QrEncodeError(QrSealError):
    pass

