from rest_framework.routers import DefaultRouter

from .views import BirdViewSet, LocationViewSet, SightingViewSet

router = DefaultRouter()
router.register('birds', BirdViewSet)
router.register('locations', LocationViewSet)
router.register('sightings', SightingViewSet)

urlpatterns = router.urls
