from typing import Any, Iterable

from django.core.serializers.json import DjangoJSONEncoder
from django.db.models import Manager, Model, QuerySet

from field_projection.exceptions import UnknownFieldError, UnknownRelationError
from field_projection.shapes import RecordShape, shape_for_model
from field_projection.spec import ProjectionSpec

_JSON_NATIVE = (str, int, float, bool, type(None), dict, list)
_encoder = DjangoJSONEncoder()


def validate(spec: ProjectionSpec, shape: RecordShape) -> None:
    """
    Check a projection spec against a shape, recursively through `include`.

    :raises UnknownFieldError: `only`, `except` or `methods` names a field the shape does not have.
    :raises UnknownRelationError: `include` names a relation the shape does not expose.
    """
    for names in (spec.only, spec.except_):
        unknown = [n for n in (names or ()) if n not in shape.fields]
        if unknown:
            raise UnknownFieldError(shape.name, unknown)
    unknown = [m for m in spec.methods if m not in shape.methods]
    if unknown:
        raise UnknownFieldError(shape.name, unknown)

    unknown = [r for r in spec.include if r not in shape.relations]
    if unknown:
        raise UnknownRelationError(shape.name, unknown)
    for rel_name, nested in spec.include.items():
        validate(nested, shape.relations[rel_name].resolve_shape())


def base_fields(spec: ProjectionSpec, shape: RecordShape) -> list[str]:
    if spec.only is not None:
        return list(spec.only)
    excluded = set(spec.except_ or ())
    return [name for name in shape.fields if name not in excluded]


def project(record_or_collection, spec: ProjectionSpec | dict | None = None, shape: RecordShape | None = None):
    """
    Project a record, or an ordered collection of records, to a JSON-serializable value.

    ```
    project(sighting, ProjectionSpec(except_=["updated_at"],
                                     include={"bird": {"only": ["name", "species"]}}))
    ```

    :param record_or_collection: a record (model instance, mapping, object) or a list,
        tuple or queryset of records of the same shape.
    :param spec: the projection; None means all own scalar fields and no relations.
    :param shape: the shape of the records; derived from the model for Django instances
        and querysets.
    :return: a dict for a single record, a list of dicts for a collection.
    """
    spec = ProjectionSpec.coerce(spec)
    many = _is_collection(record_or_collection)
    if shape is None:
        if isinstance(record_or_collection, (list, tuple)) and not record_or_collection:
            return []
        shape = _infer_shape(record_or_collection, many)

    # the whole tree is checked first so a bad spec never yields partial output
    validate(spec, shape)

    if many:
        return [_project_one(record, spec, shape) for record in _iterate(record_or_collection)]
    return _project_one(record_or_collection, spec, shape)


def _project_one(record, spec: ProjectionSpec, shape: RecordShape) -> dict:
    ret = {}
    for name in base_fields(spec, shape):
        ret[name] = to_json_value(shape.read(record, name))
    for name in spec.methods:
        ret[name] = to_json_value(shape.call_method(record, name))
    for rel_name, nested in spec.include.items():
        relation = shape.relations[rel_name]
        related = relation.fetch(record)
        nested_shape = relation.resolve_shape()
        if relation.many:
            ret[rel_name] = [_project_one(r, nested, nested_shape) for r in _iterate(related)]
        elif related is None:
            ret[rel_name] = None
        else:
            ret[rel_name] = _project_one(related, nested, nested_shape)
    return ret


def to_json_value(value: Any) -> Any:
    """Render a scalar the way JSON needs it (ISO-8601 datetimes, str decimals and UUIDs...)."""
    if isinstance(value, _JSON_NATIVE):
        return value
    return _encoder.default(value)


def _is_collection(value) -> bool:
    return isinstance(value, (list, tuple, QuerySet))


def _iterate(value) -> Iterable:
    if value is None:
        return ()
    if isinstance(value, Manager):
        return value.all()
    return value


def _infer_shape(value, many) -> RecordShape:
    if isinstance(value, QuerySet):
        return shape_for_model(value.model)
    sample = value[0] if many and value else value
    if isinstance(sample, Model):
        return shape_for_model(type(sample))
    raise TypeError(f"Cannot infer the shape of {type(sample).__name__} records, pass shape=")
