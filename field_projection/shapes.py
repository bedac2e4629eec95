"""
    Static field-descriptor tables for the records a projection walks over.

    A RecordShape lists, once, the scalar fields of a kind of record (name -> accessor),
    its relations and its computed fields. Shapes of Django models are derived from
    `Model._meta` the first time they are needed and cached; shapes of plain mappings
    or objects are declared by hand.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from django.db import models

logger = logging.getLogger(__name__)

Accessor = Callable[[Any], Any]


def attribute(name: str) -> Accessor:
    """Default accessor: item lookup on mappings, attribute lookup on anything else."""
    def read(record):
        if isinstance(record, Mapping):
            return record[name]
        return getattr(record, name)
    read.__name__ = f"read_{name}"
    return read


def related_manager(name: str) -> Accessor:
    """Accessor for plural relations exposed by a Django related manager."""
    def read(record):
        manager = getattr(record, name)
        return manager.all() if manager is not None else None
    read.__name__ = f"read_{name}_all"
    return read


@dataclass(frozen=True)
class Relation:
    """
    A named association to another record (many=False) or collection of records (many=True).
    `shape` may be a RecordShape or a zero-argument callable returning one, for shapes that
    reference each other.
    """
    accessor: Accessor
    many: bool = False
    shape: Any = None

    def resolve_shape(self) -> "RecordShape":
        shape = self.shape
        if callable(shape) and not isinstance(shape, RecordShape):
            shape = shape()
        if shape is None:
            raise TypeError("Relation has no target shape")
        return shape

    def fetch(self, record):
        return self.accessor(record)


@dataclass(frozen=True)
class RecordShape:
    name: str
    fields: Mapping[str, Accessor] = field(default_factory=dict)
    relations: Mapping[str, Relation] = field(default_factory=dict)
    methods: Mapping[str, Accessor] = field(default_factory=dict)

    @classmethod
    def declare(cls, name, fields=(), relations=None, methods=()):
        """
        Declare a shape by listing its field names.
        Fields and methods may be names (read with the default accessor) or (name, accessor) pairs.
        Relations map a name to a Relation, or to a RecordShape for a singular relation
        read with the default accessor.
        """
        relations = {
            rel_name: rel if isinstance(rel, Relation) else Relation(attribute(rel_name), many=False, shape=rel)
            for rel_name, rel in (relations or {}).items()
        }
        return cls(name=name,
                   fields=dict(_descriptor(f) for f in fields),
                   relations=relations,
                   methods=dict(_descriptor(m) for m in methods))

    @classmethod
    def for_mapping(cls, name, mapping: Mapping):
        """A flat shape exposing every key of the given mapping as a scalar field."""
        return cls.declare(name, fields=list(mapping.keys()))

    @property
    def field_names(self) -> list[str]:
        return list(self.fields)

    def read(self, record, name):
        return self.fields[name](record)

    def call_method(self, record, name):
        return self.methods[name](record)


def _descriptor(item):
    if isinstance(item, str):
        return item, attribute(item)
    name, accessor = item
    return name, accessor


_model_shapes: dict[tuple[type, tuple[str, ...]], RecordShape] = {}


def shape_for_model(model: type[models.Model], methods=()) -> RecordShape:
    """
    Build the RecordShape of a Django model from its metadata.

    Scalar fields are the concrete columns in declaration order; foreign keys appear under
    their column name (e.g. `bird_id`). Forward foreign keys and one-to-one fields become
    singular relations, reverse foreign keys and many-to-many fields plural ones.

    :param methods: names of model attributes (properties or no-argument methods) exposed
        as computed fields.
    """
    key = (model, tuple(methods))
    if key in _model_shapes:
        return _model_shapes[key]

    fields = {}
    relations = {}
    for f in model._meta.get_fields():
        if f.concrete and not f.many_to_many:
            fields[f.attname] = attribute(f.attname)
        if not f.is_relation or f.related_model is None:
            continue
        # reverse relations are reached through their accessor, e.g. bird.sightings
        name = f.get_accessor_name() if f.auto_created and not f.concrete else f.name
        if f.one_to_many or f.many_to_many:
            relations[name] = Relation(related_manager(name), many=True,
                                       shape=_lazy_model_shape(f.related_model))
        else:
            relations[name] = Relation(_singular_accessor(f, name), many=False,
                                       shape=_lazy_model_shape(f.related_model))

    shape = RecordShape(
        name=model._meta.label,
        fields=fields,
        relations=relations,
        methods={m: _method_accessor(m) for m in methods},
    )
    logger.debug(f"Shape for {model._meta.label}: fields={list(fields)} relations={list(relations)}")
    _model_shapes[key] = shape
    return shape


def _singular_accessor(f, name):
    def read(record):
        try:
            return getattr(record, name)
        except f.related_model.DoesNotExist:
            # reverse one-to-one with no row on the other side
            return None
    read.__name__ = f"read_{name}"
    return read


def _method_accessor(name):
    def read(record):
        value = getattr(record, name)
        return value() if callable(value) else value
    read.__name__ = f"call_{name}"
    return read


def _lazy_model_shape(model):
    return lambda: shape_for_model(model)
