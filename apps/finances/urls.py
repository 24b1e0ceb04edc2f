"""URL routing for the finance domain."""

from __future__ import annotations

from rest_framework.routers import SimpleRouter  # type: ignore

from .views import TransactionViewSet

router = SimpleRouter()
router.register(r"transactions", TransactionViewSet, basename="transaction")

urlpatterns = router.urls
