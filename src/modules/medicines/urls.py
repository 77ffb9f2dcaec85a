"""Medicine URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.medicines.views import MedicineViewSet

router = DefaultRouter(trailing_slash=True)
router.register("medicines", MedicineViewSet, basename="medicine")

urlpatterns = router.urls
