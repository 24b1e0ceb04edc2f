"""URL routing for the review domain."""

from __future__ import annotations

from rest_framework.routers import SimpleRouter  # type: ignore

from .views import RatingViewSet

router = SimpleRouter()
router.register(r'ratings', RatingViewSet, basename='rating')

urlpatterns = router.urls
