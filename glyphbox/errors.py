from __future__ import annotations


class TextBoxError(Exception):
    """Base class for every failure raised by glyphbox."""


class RectError(TextBoxError):
    def __init__(self, message: str = "failed to calculate text dimensions") -> None:
        super().__init__(message)


class InsetError(TextBoxError):
    def __init__(self, message: str = "failed to inset text rect") -> None:
        super().__init__(message)


class OutsetError(TextBoxError):
    def __init__(self, message: str = "failed to outset text rect") -> None:
        super().__init__(message)


class GlyphPixmapError(TextBoxError):
    def __init__(self, message: str = "failed to create glyph canvas") -> None:
        super().__init__(message)


class BoundsError(TextBoxError):
    """Builder used in a bounds state that does not allow the call."""


class StaleLayoutError(TextBoxError):
    """The layout behind a TextBox has been reset by a later build."""
