"""Exceptions and warning categories."""


class BookError(Exception):
    """Base class for all book_to_chapters failures."""


class ParseError(BookError):
    """Raised when a PDF or EPUB cannot be read."""


class MalformedContainerError(ParseError):
    """Raised when container.xml, content.opf or the outline root is missing or invalid."""


class NoNavigationDataError(ParseError):
    """Raised when a book carries no usable outline, nav document or NCX."""


class ExportError(BookError):
    """Raised when rendering or packaging an export fails."""


class BookWarning(UserWarning):
    """Base class for recoverable conditions that are logged and skipped over."""


class UnresolvableDestinationWarning(BookWarning):
    """An outline entry's destination has no page; page 1 is used instead."""


class MissingAnchorWarning(BookWarning):
    """An EPUB anchor is absent from its resource; the whole resource is used."""


class EmptyContentSkipped(BookWarning):
    """An export task has no renderable content and was skipped."""
