from field_projection import ProjectionSpec
from field_projection.views import ProjectedModelViewSet

from .models import Bird, Location, Sighting
from .serializers import BirdSerializer, LocationSerializer, SightingSerializer


class BirdViewSet(ProjectedModelViewSet):
    """
    API view to list, create, retrieve, update or delete birds.
    Retrieving a bird also lists where it was sighted.
    """
    queryset = Bird.objects.order_by('id')
    serializer_class = BirdSerializer
    action_projections = {
        'retrieve': ProjectionSpec(
            except_=['updated_at'],
            include={'sightings': {'only': ['id', 'location_id', 'created_at']}},
        ),
    }


class LocationViewSet(ProjectedModelViewSet):
    """
    API view to list, create, retrieve, update or delete locations.
    """
    queryset = Location.objects.order_by('id')
    serializer_class = LocationSerializer


class SightingViewSet(ProjectedModelViewSet):
    """
    API view to list, create, retrieve, update or delete sightings.
    """
    queryset = Sighting.objects.select_related('bird', 'location')
    serializer_class = SightingSerializer
