import logging

from django.core.exceptions import ImproperlyConfigured
from django.db.models import Manager, QuerySet
from rest_framework import serializers
from rest_framework.renderers import JSONRenderer
from rest_framework.serializers import SerializerMetaclass

from field_projection.projector import project, validate
from field_projection.shapes import RecordShape, shape_for_model
from field_projection.spec import ProjectionSpec

logger = logging.getLogger(__name__)


class ProjectedListSerializer(serializers.ListSerializer):
    """List counterpart of ProjectedModelSerializer: projects the whole collection in one pass."""

    def to_representation(self, data):
        records = data.all() if isinstance(data, Manager) else data
        if not isinstance(records, (list, tuple, QuerySet)):
            records = list(records)
        return project(records, self.child.get_projection(), self.child.get_shape())

    def to_serialized_json(self) -> str:
        return JSONRenderer().render(self.data).decode("utf-8")


class ProjectionSerializerMeta(SerializerMetaclass):
    registry = {}

    def __init__(cls, name, bases, namespace):
        super().__init__(name, bases, namespace)
        # Skip base class itself
        if name == "ProjectedModelSerializer" and cls.__module__ == __name__:
            return
        ProjectionSerializerMeta.registry[f"{cls.__module__}.{name}"] = cls
        meta = getattr(cls, "Meta", None)
        if meta is not None and not hasattr(meta, "list_serializer_class"):
            meta.list_serializer_class = ProjectedListSerializer

    @staticmethod
    def iter_all():
        """
        Iterate over all ProjectedModelSerializer subclasses
        """
        for name, cls in ProjectionSerializerMeta.registry.items():
            yield name, cls


class ProjectedModelSerializer(serializers.ModelSerializer, metaclass=ProjectionSerializerMeta):
    """
    A ModelSerializer whose output is shaped by a declarative projection instead of its fields.
    Input validation, create and update are left to ModelSerializer.

    ```
    class SightingSerializer(ProjectedModelSerializer):
        projection = ProjectionSpec(
            except_=["updated_at"],
            include={"bird": {"only": ["name", "species"]},
                     "location": {"only": ["latitude", "longitude"]}},
        )

        class Meta:
            model = Sighting
            fields = ["bird", "location"]

    SightingSerializer(sighting).data
    ```

    A `projection` entry in the serializer context overrides the class projection for one call.
    """

    projection: ProjectionSpec = ProjectionSpec()
    "The projection applied to every instance this serializer outputs."

    projection_methods: list[str] = []
    "Model attributes exposed to the projection as computed fields (see ProjectionSpec.methods)."

    @classmethod
    def get_shape(cls) -> RecordShape:
        model = getattr(getattr(cls, "Meta", None), "model", None)
        if model is None:
            raise ImproperlyConfigured(f"{cls.__name__} needs a Meta.model to build its projection shape")
        return shape_for_model(model, methods=tuple(cls.projection_methods))

    def get_projection(self) -> ProjectionSpec:
        return ProjectionSpec.coerce(self.context.get("projection") or self.projection)

    def to_representation(self, instance):
        return project(instance, self.get_projection(), self.get_shape())

    def to_serialized_json(self) -> str:
        """The projected representation rendered as JSON text."""
        return JSONRenderer().render(self.data).decode("utf-8")

    @classmethod
    def validate_projection(cls, projection=None) -> ProjectionSpec:
        """Check `projection` (the class projection by default) against the model shape."""
        spec = ProjectionSpec.coerce(cls.projection if projection is None else projection)
        validate(spec, cls.get_shape())
        return spec


def validate_registered():
    """
    Validate the projection of every registered serializer against its model.
    Raises the first UnknownFieldError / UnknownRelationError found.
    """
    count = 0
    for name, cls in ProjectionSerializerMeta.iter_all():
        spec = cls.validate_projection()
        logger.debug(f"Validated projection of {name}: {spec.to_options()}")
        count += 1
    logger.info(f"Validated {count} projected serializer(s)")
