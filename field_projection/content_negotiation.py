import logging
from rest_framework.negotiation import DefaultContentNegotiation
from rest_framework.renderers import JSONRenderer

logger = logging.getLogger(__name__)


class JSONContentNegotiation(DefaultContentNegotiation):
    """
    Content negotiation for projected endpoints: projections only ever produce JSON,
    so whatever the Accept header asks for, answer with the JSON renderer.
    """

    def select_renderer(self, request, renderers, format_suffix=None):
        accept_header = request.headers.get('Accept', 'Not provided')
        logger.debug(f"Projection content negotiation - Accept header: {accept_header}")

        json_renderer = next((r for r in renderers if isinstance(r, JSONRenderer)), None)
        if json_renderer is None:
            json_renderer = JSONRenderer()
            logger.debug(f"Projection content negotiation - no JSON renderer configured, using {type(json_renderer).__name__}")

        return json_renderer, 'application/json'
