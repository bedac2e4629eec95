class ProjectionError(Exception):
    """Base class for projection configuration errors."""

    code = "projection_error"

    def __init__(self, shape_name, names, message=None):
        self.shape_name = shape_name
        self.names = tuple(names)
        super().__init__(message or self.default_message())

    def default_message(self):
        return f"Invalid projection for '{self.shape_name}': {', '.join(self.names)}"


class UnknownFieldError(ProjectionError):
    """`only`, `except` or `methods` names a field the record does not have."""

    code = "unknown_field"

    def default_message(self):
        return f"Unknown field(s) for '{self.shape_name}': {', '.join(self.names)}"


class UnknownRelationError(ProjectionError):
    """`include` names a relation the record does not expose."""

    code = "unknown_relation"

    def default_message(self):
        return f"Unknown relation(s) for '{self.shape_name}': {', '.join(self.names)}"
