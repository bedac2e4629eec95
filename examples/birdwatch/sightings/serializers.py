from field_projection import ProjectionSpec
from field_projection.serializers import ProjectedModelSerializer

from .models import Bird, Location, Sighting


class BirdSerializer(ProjectedModelSerializer):
    """Serializer for the Bird model"""
    class Meta:
        model = Bird
        fields = ['name', 'species', 'color']


class LocationSerializer(ProjectedModelSerializer):
    """Serializer for the Location model"""
    class Meta:
        model = Location
        fields = ['latitude', 'longitude', 'country']


class SightingSerializer(ProjectedModelSerializer):
    """
    Serializer for the Sighting model: the sighting itself without its update time,
    with the bird's name and species and the location's coordinates.
    """
    projection = ProjectionSpec(
        except_=['updated_at'],
        include={
            'bird': {'only': ['name', 'species']},
            'location': {'only': ['latitude', 'longitude']},
        },
    )
    projection_methods = ['summary']

    class Meta:
        model = Sighting
        fields = ['bird', 'location', 'created_at']
        extra_kwargs = {'created_at': {'required': False}}
