"""Errors raised by the scheduling services."""


class SchedulingError(Exception):
    """Base class for scheduling failures surfaced to callers."""


class TemplateNotFoundError(SchedulingError):
    """No active phase template with the requested name."""

    def __init__(self, template_name):
        self.template_name = template_name
        super().__init__(f"Template not found: {template_name}")


class InvalidTemplateError(SchedulingError):
    """Template items do not form a valid, correctly ordered dependency graph."""

    def __init__(self, message, item_id=None):
        self.item_id = item_id
        super().__init__(message)


class StorageError(SchedulingError):
    """A read or write against the backing store failed."""

    def __init__(self, message, original=None):
        self.original = original
        super().__init__(message)
