from field_projection.exceptions import ProjectionError, UnknownFieldError, UnknownRelationError
from field_projection.projector import project, validate
from field_projection.shapes import Relation, RecordShape, shape_for_model
from field_projection.spec import ProjectionSpec

__all__ = [
    "ProjectionError",
    "ProjectionSpec",
    "RecordShape",
    "Relation",
    "UnknownFieldError",
    "UnknownRelationError",
    "project",
    "shape_for_model",
    "validate",
]
