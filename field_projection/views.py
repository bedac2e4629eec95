import logging

from rest_framework import status, viewsets
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from field_projection.content_negotiation import JSONContentNegotiation
from field_projection.exceptions import ProjectionError
from field_projection.spec import ProjectionSpec

logger = logging.getLogger(__name__)


def projection_exception_handler(exc, context):
    """
    DRF exception handler turning projection configuration errors into a 500 JSON response.
    Anything else goes to the default DRF handler.

    Can be installed globally with REST_FRAMEWORK["EXCEPTION_HANDLER"].
    """
    if isinstance(exc, ProjectionError):
        view = context.get("view")
        logger.exception(f"Projection error in {type(view).__name__ if view else 'view'}")
        return Response({"detail": str(exc), "code": exc.code},
                        status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return drf_exception_handler(exc, context)


class ProjectedModelViewSet(viewsets.ModelViewSet):
    """
    ModelViewSet for ProjectedModelSerializer serializers.

    `action_projections` maps a viewset action ("list", "retrieve", "create"...) to the
    projection used for its response, in place of the serializer's own projection.

    ```
    class SightingViewSet(ProjectedModelViewSet):
        queryset = Sighting.objects.all()
        serializer_class = SightingSerializer
        action_projections = {"list": ProjectionSpec(only=["id", "created_at"])}
    ```
    """
    content_negotiation_class = JSONContentNegotiation

    action_projections: dict = {}

    def get_projection(self) -> ProjectionSpec | None:
        projection = self.action_projections.get(getattr(self, "action", None))
        return ProjectionSpec.coerce(projection) if projection is not None else None

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        # checked before the handler runs, so create/update never write with a broken projection
        projection = self.get_projection()
        if projection is not None:
            self.get_serializer_class().validate_projection(projection)

    def get_serializer_context(self):
        context = super().get_serializer_context()
        projection = self.get_projection()
        if projection is not None:
            context["projection"] = projection
        return context

    def get_exception_handler(self):
        return projection_exception_handler
